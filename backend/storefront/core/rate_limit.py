"""
Rate limiting middleware for the Storefront backend
Uses in-memory storage with a sliding window per client
"""
import time
import hashlib
import logging
from collections import defaultdict, deque
from typing import Deque, Dict, Tuple

from fastapi import Request, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    In-memory sliding window limiter.

    Each instance of the API keeps its own window; with several replicas
    the effective limit is multiplied by the replica count.
    """

    def __init__(self, cleanup_interval: int = 60):
        # {identifier: deque[timestamps]}
        self._requests: Dict[str, Deque[float]] = defaultdict(deque)
        self._last_cleanup = time.time()
        self._cleanup_interval = cleanup_interval

    def _cleanup(self, now: float, window_seconds: int):
        """Drop identifiers with no hits in the last two windows"""
        if now - self._last_cleanup < self._cleanup_interval:
            return

        cutoff = now - window_seconds * 2
        for identifier in list(self._requests.keys()):
            hits = self._requests[identifier]
            if not hits or hits[-1] <= cutoff:
                del self._requests[identifier]

        self._last_cleanup = now

    def is_allowed(
        self,
        identifier: str,
        max_requests: int,
        window_seconds: int = 60
    ) -> Tuple[bool, int, int]:
        """
        Check if a request is allowed under the rate limit.

        Returns:
            Tuple of (is_allowed, remaining_requests, retry_after_seconds)
        """
        now = time.time()
        self._cleanup(now, window_seconds)

        hits = self._requests[identifier]
        window_start = now - window_seconds
        while hits and hits[0] <= window_start:
            hits.popleft()

        if len(hits) >= max_requests:
            retry_after = int(hits[0] + window_seconds - now) + 1
            return False, 0, retry_after

        hits.append(now)
        return True, max_requests - len(hits), 0

    def reset(self):
        self._requests.clear()


# Global rate limiter instance
rate_limiter = RateLimiter()


# Requests per minute
RATE_LIMITS = {
    "checkout": 20,          # order creation / payment verification
    "authenticated": 600,
    "unauthenticated": 120,
}

CHECKOUT_PREFIX = "/api/v1/checkout"

# Paths that are exempt from rate limiting
EXEMPT_PATHS = {
    "/",
    "/health",
    "/docs",
    "/openapi.json",
    "/redoc",
}


def client_identifier(request: Request) -> Tuple[str, bool]:
    """
    Identify the caller: hashed bearer token when present, else client IP.

    Returns:
        Tuple of (identifier, is_authenticated)
    """
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        digest = hashlib.sha256(auth_header.encode()).hexdigest()[:24]
        return f"jwt:{digest}", True

    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return f"ip:{forwarded_for.split(',')[0].strip()}", False
    if request.client:
        return f"ip:{request.client.host}", False
    return "ip:unknown", False


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Applies per-client limits. Checkout endpoints get their own, tighter
    bucket so a burst of retries at payment time can't starve browsing.

    Headers returned:
    - X-RateLimit-Limit / X-RateLimit-Remaining on every limited path
    - Retry-After when the request is rejected
    """

    async def dispatch(self, request: Request, call_next):
        if request.url.path in EXEMPT_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        identifier, authenticated = client_identifier(request)

        if request.url.path.startswith(CHECKOUT_PREFIX):
            identifier = f"checkout:{identifier}"
            limit = RATE_LIMITS["checkout"]
        elif authenticated:
            limit = RATE_LIMITS["authenticated"]
        else:
            limit = RATE_LIMITS["unauthenticated"]

        allowed, remaining, retry_after = rate_limiter.is_allowed(identifier, limit, window_seconds=60)

        if not allowed:
            logger.warning(f"Rate limit exceeded: {identifier} on {request.method} {request.url.path}")
            # JSONResponse instead of HTTPException so CORS headers still apply
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"detail": "Too many requests. Please slow down.", "code": "rate_limited"},
                headers={
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": "0",
                    "Retry-After": str(retry_after),
                }
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        return response
