"""
Authentication dependencies for the Storefront backend
Validates Supabase access tokens (HS256 JWT) and provides user context
"""
import hmac
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from pydantic import BaseModel

from storefront.core.config import settings
from storefront.repositories.user_repository import UserRepository


# Security scheme for bearer tokens
security = HTTPBearer(auto_error=False)


class TokenUser(BaseModel):
    """User data extracted from a Supabase access token"""
    id: str
    email: str
    role: str = "authenticated"
    is_admin: bool = False
    is_internal: bool = False


INTERNAL_USER = TokenUser(id="internal", email="internal@localhost", role="service", is_admin=True, is_internal=True)


def decode_supabase_token(token: str) -> dict:
    """
    Decode and validate a Supabase JWT.

    Supabase access token structure (relevant claims):
    {
        "sub": "user uuid",
        "email": "shopper@example.com",
        "role": "authenticated",
        "aud": "authenticated",
        "exp": 1234567890
    }
    """
    secret = settings.SUPABASE_JWT_SECRET
    if not secret:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="SUPABASE_JWT_SECRET is not configured"
        )

    try:
        return jwt.decode(
            token,
            secret,
            algorithms=["HS256"],
            options={"verify_aud": False}
        )
    except JWTError as e:
        if "expired" in str(e).lower():
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token has expired",
                headers={"WWW-Authenticate": "Bearer"}
            )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"}
        )


def _user_from_payload(payload: dict) -> Optional[TokenUser]:
    user_id = payload.get("sub")
    email = payload.get("email")
    if not user_id or not email:
        return None
    return TokenUser(id=user_id, email=email, role=payload.get("role", "authenticated"))


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> TokenUser:
    """
    Dependency that extracts and validates the current shopper from the JWT.

    Usage:
        @router.get("/cart")
        async def get_cart(user: TokenUser = Depends(get_current_user)):
            ...
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"}
        )

    user = _user_from_payload(decode_supabase_token(credentials.credentials))
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload: missing user id or email",
            headers={"WWW-Authenticate": "Bearer"}
        )
    return user


def is_internal_key(key: Optional[str]) -> bool:
    """Constant-time check of the X-Internal-Key header"""
    expected = settings.INTERNAL_SERVICE_KEY
    if not key or not expected:
        return False
    return hmac.compare_digest(key, expected)


async def require_admin(
    user: TokenUser = Depends(get_current_user)
) -> TokenUser:
    """Only users with the `admin` row in user_roles"""
    if not UserRepository().is_admin(user.id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Admin role required"
        )
    return user.model_copy(update={"is_admin": True})


async def require_admin_or_internal(
    x_internal_key: Optional[str] = Header(None, alias="X-Internal-Key"),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> TokenUser:
    """
    Admin users, or other hosted functions / cron jobs presenting
    X-Internal-Key (smart coupon generation, stale order cleanup).
    """
    if is_internal_key(x_internal_key):
        return INTERNAL_USER

    user = await get_current_user(credentials)
    return await require_admin(user)
