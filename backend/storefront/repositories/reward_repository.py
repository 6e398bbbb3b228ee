"""
Reward Repository - user_rewards rows granted by the reward wheel
"""
from datetime import datetime
from typing import List, Optional

from storefront.domain.reward import UserReward
from storefront.core.database import get_db_connection_dict, row_to_dict


class RewardRepository:

    def create(self, user_id: str, coupon_id: Optional[str], code: str, expires_at: datetime) -> UserReward:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                INSERT INTO user_rewards (user_id, coupon_id, code, expires_at, is_used)
                VALUES (%s, %s, %s, %s, FALSE)
                RETURNING id, user_id, coupon_id, code, expires_at, is_used, created_at
            """, (user_id, coupon_id, code, expires_at))
            row = cursor.fetchone()
            conn.commit()
            return UserReward(**row_to_dict(row))

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def find_by_user(self, user_id: str) -> List[UserReward]:
        """Newest first"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT id, user_id, coupon_id, code, expires_at, is_used, created_at
                FROM user_rewards
                WHERE user_id = %s
                ORDER BY created_at DESC
            """, (user_id,))
            return [UserReward(**row_to_dict(row)) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def mark_used(self, user_id: str, code: str) -> int:
        """Flag the user's unused rewards for this code as used"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE user_rewards SET is_used = TRUE
                WHERE user_id = %s AND code = %s AND is_used = FALSE
            """, (user_id, code))
            updated = cursor.rowcount
            conn.commit()
            return updated

        finally:
            cursor.close()
            conn.close()
