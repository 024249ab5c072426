from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import logging
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from core.config import settings
from db.database import USERS, get_repository
from models.user import User, UserRole
from repositories.base import BaseRepository, parse_object_id


bearer_scheme = HTTPBearer(auto_error=False)
logger = logging.getLogger(__name__)


def create_access_token(subject: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    to_encode = subject.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_user_token(user: User) -> str:
    return create_access_token({"userId": str(user.id), "email": user.email, "role": user.role.value})


def decode_access_token(token: str) -> Dict[str, Any]:
    return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])


async def get_user_by_id(repo: BaseRepository, user_id: Any) -> Optional[User]:
    oid = parse_object_id(user_id)
    if oid is None:
        return None
    doc = await repo.find_one(USERS, {"_id": oid})
    return User(**doc) if doc else None


async def user_from_token(repo: BaseRepository, token: str) -> Optional[User]:
    """Resolve a bearer token to its user; raises JWTError on a bad token."""
    payload = decode_access_token(token)
    user_id = payload.get("userId")
    if user_id is None:
        logger.error("auth.token_missing_user_id")
        raise JWTError("token has no userId")
    return await get_user_by_id(repo, user_id)


def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    repo: BaseRepository = Depends(get_repository),
) -> Optional[User]:
    if credentials is None:
        return None
    try:
        user = await user_from_token(repo, credentials.credentials)
    except JWTError:
        logger.warning("auth.jwt_error")
        raise _credentials_exception()
    if user is None:
        logger.error("auth.user_not_found_for_token")
        raise _credentials_exception()
    return user


async def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    if user is None:
        raise _credentials_exception()
    return user


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != UserRole.admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return current_user


async def require_booker(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role == UserRole.guest:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Guests cannot create bookings")
    return current_user
