"""
Reward Service
The reward wheel: prize pool, spins and the shopper's granted rewards
"""
import random
import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Optional

from storefront.core.config import settings
from storefront.domain.coupon import Coupon
from storefront.domain.reward import Prize, Rarity, UserReward
from storefront.repositories.coupon_repository import CouponRepository
from storefront.repositories.reward_repository import RewardRepository

logger = logging.getLogger(__name__)


PRIZE_POOL_SIZE = 10

# Used when no coupon is active
FALLBACK_PRIZES = [
    Prize(code="WELCOME5", label="Welcome Gift", value_label="5% OFF", rarity=Rarity.COMMON),
    Prize(code="FREESHIP", label="Starter Pack", value_label="Free Shipping", rarity=Rarity.RARE),
    Prize(code="LUCKY10", label="Lucky Day", value_label="10% OFF", rarity=Rarity.RARE),
    Prize(code="JACKPOT20", label="Jackpot", value_label="20% OFF", rarity=Rarity.LEGENDARY),
]


def rarity_for(value: Decimal) -> Rarity:
    if value > 20:
        return Rarity.LEGENDARY
    if value > 10:
        return Rarity.RARE
    return Rarity.COMMON


def prize_from_coupon(coupon: Coupon) -> Prize:
    return Prize(
        code=coupon.code,
        label=coupon.description or "Reward",
        value_label=coupon.value_label,
        rarity=rarity_for(coupon.discount_value),
        coupon_id=coupon.id,
    )


class RewardService:

    def __init__(
        self,
        coupon_repository: Optional[CouponRepository] = None,
        reward_repository: Optional[RewardRepository] = None,
        rng: Optional[random.Random] = None
    ):
        self.coupon_repository = coupon_repository or CouponRepository()
        self.reward_repository = reward_repository or RewardRepository()
        self.rng = rng or random.SystemRandom()

    def get_prizes(self) -> List[Prize]:
        """Up to 10 open coupons as prizes, or the fallback pool"""
        coupons = [
            coupon for coupon in self.coupon_repository.find_active(limit=PRIZE_POOL_SIZE)
            if not coupon.allowed_emails and not coupon.is_exhausted
        ]
        if not coupons:
            return list(FALLBACK_PRIZES)
        return [prize_from_coupon(coupon) for coupon in coupons]

    def spin(self, user_id: str, now: Optional[datetime] = None) -> Dict:
        """
        Pick a prize uniformly at random and grant it

        A user_rewards row (valid REWARD_EXPIRY_DAYS) is recorded only when
        the prize is backed by a real coupon.
        """
        now = now or datetime.now(timezone.utc)
        prizes = self.get_prizes()
        prize = self.rng.choice(prizes)

        reward = None
        if prize.coupon_id:
            expires_at = now + timedelta(days=settings.REWARD_EXPIRY_DAYS)
            reward = self.reward_repository.create(user_id, prize.coupon_id, prize.code, expires_at)
            logger.info(f"Reward granted: user={user_id} code={prize.code} rarity={prize.rarity.value}")
        else:
            logger.info(f"Fallback prize drawn for user {user_id}: {prize.code}")

        return {
            'prize': prize.model_dump(mode='json'),
            'prizes': [p.model_dump(mode='json') for p in prizes],
            'reward': reward.to_dict(now) if reward else None,
        }

    def list_rewards(self, user_id: str, now: Optional[datetime] = None) -> List[Dict]:
        """The user's rewards with status active / used / expired"""
        now = now or datetime.now(timezone.utc)
        rewards: List[UserReward] = self.reward_repository.find_by_user(user_id)
        return [reward.to_dict(now) for reward in rewards]
