from __future__ import annotations

from typing import Any, Dict, List

from bson import ObjectId
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from pymongo.errors import DuplicateKeyError

from db.database import USERS, get_repository
from models.user import User, UserRole
from repositories.base import BaseRepository, parse_object_id
from schemas.auth import MessageResponse
from schemas.users import RoleUpdate, UserCreate, UserUpdate
from services.security import get_current_user, require_admin


logger = logging.getLogger(__name__)
router = APIRouter(prefix="/users", tags=["users"])

HIDDEN_FIELDS = {"googleId": 0}


def _user_oid(user_id: str) -> ObjectId:
    oid = parse_object_id(user_id)
    if oid is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid user id")
    return oid


def _is_self(current_user: User, user_id: str) -> bool:
    return str(current_user.id) == user_id


async def _email_taken(repo: BaseRepository, email: str, *, exclude: ObjectId | None = None) -> bool:
    query: Dict[str, Any] = {"email": email}
    if exclude is not None:
        query["_id"] = {"$ne": exclude}
    return await repo.find_one(USERS, query) is not None


@router.get("", response_model=List[User])
async def list_users(
    _: User = Depends(require_admin),
    repo: BaseRepository = Depends(get_repository),
) -> List[User]:
    docs = await repo.find_many(USERS, {}, projection=HIDDEN_FIELDS, sort=[("createdAt", -1)])
    return [User(**d) for d in docs]


@router.post("", response_model=User, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: UserCreate,
    admin: User = Depends(require_admin),
    repo: BaseRepository = Depends(get_repository),
) -> User:
    email = str(payload.email).lower()
    if await _email_taken(repo, email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A user with this email already exists")
    doc: Dict[str, Any] = {
        "email": email,
        "name": payload.name,
        "picture": payload.picture,
        "role": payload.role.value,
    }
    try:
        doc["_id"] = await repo.insert_one(USERS, doc)
    except DuplicateKeyError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A user with this email already exists")
    logger.info("users.created", extra={"email": email, "role": payload.role.value, "admin_id": str(admin.id)})
    return User(**doc)


@router.get("/{user_id}", response_model=User)
async def get_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    repo: BaseRepository = Depends(get_repository),
) -> User:
    if not _is_self(current_user, user_id) and not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    doc = await repo.find_one(USERS, {"_id": _user_oid(user_id)}, projection=HIDDEN_FIELDS)
    if not doc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return User(**doc)


@router.put("/{user_id}", response_model=User)
async def update_user(
    user_id: str,
    payload: UserUpdate,
    current_user: User = Depends(get_current_user),
    repo: BaseRepository = Depends(get_repository),
) -> User:
    if not _is_self(current_user, user_id) and not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    oid = _user_oid(user_id)

    updates = payload.model_dump(exclude_unset=True, exclude_none=True, mode="json")
    if not current_user.is_admin:
        updates.pop("role", None)
    if "email" in updates:
        updates["email"] = updates["email"].lower()
        if await _email_taken(repo, updates["email"], exclude=oid):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A user with this email already exists")

    if updates:
        doc = await repo.update_one(USERS, {"_id": oid}, {"$set": updates})
    else:
        doc = await repo.find_one(USERS, {"_id": oid})
    if not doc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    logger.info("users.updated", extra={"user_id": user_id, "fields": sorted(updates)})
    return User(**doc)


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: str,
    admin: User = Depends(require_admin),
    repo: BaseRepository = Depends(get_repository),
) -> MessageResponse:
    if _is_self(admin, user_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot delete your own account")
    deleted = await repo.delete_one(USERS, {"_id": _user_oid(user_id)})
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    logger.warning("users.deleted", extra={"user_id": user_id, "admin_id": str(admin.id)})
    return MessageResponse(message="User deleted successfully")


@router.patch("/{user_id}/role", response_model=User)
async def update_user_role(
    user_id: str,
    payload: RoleUpdate,
    admin: User = Depends(require_admin),
    repo: BaseRepository = Depends(get_repository),
) -> User:
    if payload.role not in {r.value for r in UserRole}:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid role")
    if _is_self(admin, user_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot change your own role")
    doc = await repo.update_one(USERS, {"_id": _user_oid(user_id)}, {"$set": {"role": payload.role}})
    if not doc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    logger.info("users.role_changed", extra={"user_id": user_id, "role": payload.role, "admin_id": str(admin.id)})
    return User(**doc)
