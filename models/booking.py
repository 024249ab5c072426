from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, computed_field

from .base import MongoModel, PyObjectId


class BookingStatus(str, Enum):
    confirmed = "confirmed"
    pending = "pending"
    cancelled = "cancelled"


class BookingOwner(BaseModel):
    id: PyObjectId = Field(alias="_id")
    name: str
    email: str


class Booking(MongoModel):
    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    date: str
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")
    user_id: PyObjectId = Field(alias="userId")
    user_name: str = Field(alias="userName")
    title: str
    description: Optional[str] = None
    status: BookingStatus = BookingStatus.confirmed
    user: Optional[BookingOwner] = None
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    @computed_field
    @property
    def duration(self) -> int:
        start_h, start_m = (int(part) for part in self.start_time.split(":"))
        end_h, end_m = (int(part) for part in self.end_time.split(":"))
        return (end_h * 60 + end_m) - (start_h * 60 + start_m)
