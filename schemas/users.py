from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from models.user import UserRole


class UserCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr
    name: str = Field(min_length=1)
    picture: str = ""
    role: UserRole = UserRole.user


class UserUpdate(BaseModel):
    # Unknown keys such as googleId or createdAt are dropped, never written
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    email: Optional[EmailStr] = None
    name: Optional[str] = Field(default=None, min_length=1)
    picture: Optional[str] = None
    role: Optional[UserRole] = None


class RoleUpdate(BaseModel):
    role: str
