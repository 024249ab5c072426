from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from .base import MongoModel, PyObjectId


class UserRole(str, Enum):
    guest = "guest"
    user = "user"
    admin = "admin"


class User(MongoModel):
    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    # Identity-provider detail, never serialized into responses
    google_id: Optional[str] = Field(default=None, alias="googleId", exclude=True)
    email: str
    name: str
    picture: str = ""
    role: UserRole = UserRole.user
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin
