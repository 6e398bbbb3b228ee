"""
Rewards API Endpoints
Reward wheel prizes, spins and the shopper's won codes
"""
import logging

from fastapi import APIRouter, Depends, HTTPException

from storefront.core.auth import TokenUser, get_current_user
from storefront.services.reward_service import RewardService

logger = logging.getLogger(__name__)

router = APIRouter()


def get_reward_service() -> RewardService:
    return RewardService()


@router.get("/prizes")
async def get_prizes(service: RewardService = Depends(get_reward_service)):
    """Prizes shown on the wheel"""
    try:
        prizes = service.get_prizes()
        return {"status": "success", "data": [p.model_dump(mode='json') for p in prizes]}

    except Exception as e:
        logger.error(f"Error fetching prizes: {e}")
        raise HTTPException(status_code=500, detail="Error fetching prizes")


@router.post("/spin")
async def spin(
    user: TokenUser = Depends(get_current_user),
    service: RewardService = Depends(get_reward_service)
):
    try:
        return {"status": "success", "data": service.spin(user.id)}

    except Exception as e:
        logger.error(f"Error spinning wheel for {user.id}: {e}")
        raise HTTPException(status_code=500, detail="Error spinning the wheel")


@router.get("/")
async def get_my_rewards(
    user: TokenUser = Depends(get_current_user),
    service: RewardService = Depends(get_reward_service)
):
    try:
        rewards = service.list_rewards(user.id)
        return {"status": "success", "count": len(rewards), "data": rewards}

    except Exception as e:
        logger.error(f"Error fetching rewards for {user.id}: {e}")
        raise HTTPException(status_code=500, detail="Error fetching rewards")
