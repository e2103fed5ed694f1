# skillcerts/auth/guard.py

from typing import Optional

from fastapi import Depends, Header
from motor.motor_asyncio import AsyncIOMotorDatabase

from skillcerts.auth.auth_utils import decode_access_token, extract_bearer_token
from skillcerts.config import Settings
from skillcerts.dependencies import get_db, get_settings
from skillcerts.errors import ErrorCode, ForbiddenError, UnauthorizedError
from skillcerts.utils import to_object_id

# Never leaves the database layer
PRIVATE_USER_FIELDS = {
    "password_hash": 0,
    "reset_password_token": 0,
    "reset_password_expires": 0,
}


async def _load_user(db: AsyncIOMotorDatabase, settings: Settings, authorization: str) -> dict:
    token = extract_bearer_token(authorization)
    payload = decode_access_token(token, settings.jwt_secret_key, settings.jwt_algorithm)

    user_id = to_object_id(payload.get("sub"))
    if user_id is None:
        raise UnauthorizedError("Invalid token", code=ErrorCode.AUTH_INVALID)

    user = await db.users.find_one({"_id": user_id}, PRIVATE_USER_FIELDS)
    if not user:
        raise UnauthorizedError("User not found", code=ErrorCode.AUTH_INVALID)
    return user


async def get_current_user(
    authorization: Optional[str] = Header(None),
    db: AsyncIOMotorDatabase = Depends(get_db),
    settings: Settings = Depends(get_settings)
) -> dict:
    """Resolve the bearer token to the caller's user document"""
    return await _load_user(db, settings, authorization)


async def get_optional_user(
    authorization: Optional[str] = Header(None),
    db: AsyncIOMotorDatabase = Depends(get_db),
    settings: Settings = Depends(get_settings)
) -> Optional[dict]:
    """Like get_current_user, but anonymous callers get None instead of 401"""
    if not authorization:
        return None
    try:
        return await _load_user(db, settings, authorization)
    except UnauthorizedError:
        return None


def require_roles(*roles: str):
    """Dependency factory: caller must hold one of the given roles"""

    async def checker(user: dict = Depends(get_current_user)) -> dict:
        if user.get("role") not in roles:
            raise ForbiddenError(
                f"Access denied. Required role: {' or '.join(roles)}",
                code=ErrorCode.ROLE_REQUIRED
            )
        return user

    return checker
