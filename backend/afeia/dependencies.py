# fastapi dependency injection
# resolves the practitioner behind a bearer token and provides the reference clock

import logging
from datetime import datetime, timezone
from typing import Callable

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from afeia.services.auth_service import decode_access_token
from afeia.services.db import Database, get_db

logger = logging.getLogger(__name__)

security = HTTPBearer()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Database = Depends(get_db),
) -> dict:
    """user document for the bearer token, with `id` as a string"""
    claims = decode_access_token(credentials.credentials)
    if claims is None:
        raise _unauthorized("Invalid or expired token")

    try:
        user = await db.users.find_one({"_id": ObjectId(claims["sub"])})
    except InvalidId:
        user = None

    if not user:
        raise _unauthorized("User not found")

    user["id"] = str(user["_id"])
    return user


def require_role(role: str):
    """factory for role-based access control dependency"""

    async def role_checker(current_user: dict = Depends(get_current_user)) -> dict:
        if current_user.get("role") != role:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {role}",
            )
        return current_user

    return role_checker


require_practitioner = require_role("practitioner")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


async def get_clock() -> Callable[[], datetime]:
    """reference clock for scoring, overridden in tests to pin 'now'"""
    return utc_now
