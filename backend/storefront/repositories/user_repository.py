"""
User Repository - roles and profile lookups

Auth users live in Supabase; this backend only reads user_roles and
profiles.
"""
from typing import List, Optional

from storefront.core.database import get_db_connection_dict


class UserRepository:
    """Read-only access to user_roles / profiles / newsletter_subscribers"""

    def is_admin(self, user_id: str) -> bool:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT 1
                FROM user_roles
                WHERE user_id = %s AND role = 'admin'
                LIMIT 1
            """, (user_id,))
            return cursor.fetchone() is not None

        finally:
            cursor.close()
            conn.close()

    def find_email(self, user_id: str) -> Optional[str]:
        """E-mail stored on the user's profile"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("SELECT email FROM profiles WHERE id = %s", (user_id,))
            row = cursor.fetchone()
            return row['email'] if row else None

        finally:
            cursor.close()
            conn.close()

    def find_subscriber_emails(self) -> List[str]:
        """Active newsletter subscribers"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT email
                FROM newsletter_subscribers
                WHERE is_active = TRUE AND email IS NOT NULL
                ORDER BY email
            """)
            return [row['email'] for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()
