"""
Reward Domain Models

Prizes offered by the reward wheel and the rewards granted to shoppers.
"""
from enum import Enum
from typing import Optional
from datetime import datetime, timezone

from pydantic import BaseModel, Field, ConfigDict


class Rarity(str, Enum):
    COMMON = "common"
    RARE = "rare"
    LEGENDARY = "legendary"


class RewardStatus(str, Enum):
    ACTIVE = "active"
    USED = "used"
    EXPIRED = "expired"


class Prize(BaseModel):
    """A slice of the reward wheel"""

    code: str
    label: str = Field(..., description="Coupon description, 'Reward' when empty")
    value_label: str = Field(..., description="'10% OFF', '₹100 OFF', 'Free Shipping'")
    rarity: Rarity = Rarity.COMMON
    coupon_id: Optional[str] = Field(None, description="Backing coupon; None for fallback prizes")


class UserReward(BaseModel):
    """A prize won by a shopper (user_rewards row)"""

    id: str
    user_id: str
    coupon_id: Optional[str] = None
    code: str
    expires_at: datetime
    is_used: bool = False
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    def status(self, now: Optional[datetime] = None) -> RewardStatus:
        if self.is_used:
            return RewardStatus.USED
        now = now or datetime.now(timezone.utc)
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        if now > expires_at:
            return RewardStatus.EXPIRED
        return RewardStatus.ACTIVE

    def to_dict(self, now: Optional[datetime] = None) -> dict:
        data = self.model_dump(mode='json')
        data['status'] = self.status(now).value
        return data
