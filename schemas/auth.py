from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from models.user import User


class TokenVerifyRequest(BaseModel):
    token: Optional[str] = None


class UserDisplay(BaseModel):
    id: str
    email: str
    name: str
    picture: str = ""
    role: str

    @classmethod
    def from_user(cls, user: User) -> "UserDisplay":
        return cls(id=str(user.id), email=user.email, name=user.name, picture=user.picture, role=user.role.value)


class TokenVerifyResponse(BaseModel):
    valid: bool
    user: UserDisplay


class MessageResponse(BaseModel):
    message: str
