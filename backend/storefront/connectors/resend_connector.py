"""
Resend API Connector
Transactional e-mail over the Resend REST API (POST /emails)

Missing configuration is not an error: sends are skipped with a log line
so local and test environments work without an API key.
"""
import logging
from typing import Dict, Iterable, List, Optional

import httpx

from storefront.core.config import settings

logger = logging.getLogger(__name__)


def dedupe_emails(emails: Iterable[str]) -> List[str]:
    """Lower-case, drop blanks and duplicates, keep order"""
    seen = set()
    deduped = []
    for email in emails:
        normalized = (email or "").strip().lower()
        if not normalized or normalized in seen:
            continue
        seen.add(normalized)
        deduped.append(normalized)
    return deduped


class ResendConnector:

    def __init__(self, api_key: str = None, sender: str = None, base_url: str = None, timeout: float = None):
        self.api_key = api_key or settings.RESEND_API_KEY
        self.sender = sender or settings.RESEND_FROM
        self.base_url = (base_url or settings.RESEND_API_URL).rstrip("/")
        self.timeout = timeout or settings.RESEND_TIMEOUT_SECONDS

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.sender)

    async def send(
        self,
        to_emails: Iterable[str],
        subject: str,
        html_body: str,
        text_body: str,
        bcc: Optional[Iterable[str]] = None,
        tags: Optional[Dict[str, str]] = None
    ) -> bool:
        """
        Send one e-mail to the given recipients

        Returns:
            True when Resend accepted the message
        """
        if not self.is_configured:
            logger.info(
                f"Resend email skipped (missing configuration): "
                f"has_api_key={bool(self.api_key)} has_from={bool(self.sender)}"
            )
            return False

        recipients = dedupe_emails(to_emails)
        if not recipients:
            logger.info(f"Resend email skipped (no recipients): {subject}")
            return False

        payload = {
            "from": self.sender,
            "to": recipients,
            "subject": subject,
            "html": html_body,
            "text": text_body,
        }
        if bcc:
            payload["bcc"] = dedupe_emails(bcc)
        if tags:
            payload["tags"] = [{"name": key, "value": value} for key, value in tags.items()]

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                f"{self.base_url}/emails",
                json=payload,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
            )

        if response.status_code >= 400:
            logger.warning(f"Resend email failed: {subject} ({response.status_code}) {response.text}")
            return False

        logger.info(f"Resend email sent: {subject} to {len(recipients)} recipient(s)")
        return True
