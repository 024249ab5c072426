from __future__ import annotations

from datetime import date as date_type
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator

from models.booking import BookingStatus
from services.bookings import DATE_RE, InvalidSlotError, normalize_time


def _check_date(value: str) -> str:
    if not DATE_RE.match(value):
        raise ValueError("Date must be in YYYY-MM-DD format")
    try:
        date_type.fromisoformat(value)
    except ValueError:
        raise ValueError("Invalid date")
    return value


def _check_time(value: str) -> str:
    try:
        return normalize_time(value)
    except InvalidSlotError as exc:
        raise ValueError(str(exc))


DateStr = Annotated[str, AfterValidator(_check_date)]
TimeStr = Annotated[str, AfterValidator(_check_time)]


class BookingCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    date: DateStr
    start_time: TimeStr = Field(alias="startTime")
    end_time: TimeStr = Field(alias="endTime")
    title: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)


class BookingUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    date: Optional[DateStr] = None
    start_time: Optional[TimeStr] = Field(default=None, alias="startTime")
    end_time: Optional[TimeStr] = Field(default=None, alias="endTime")
    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    status: Optional[BookingStatus] = None


class PublicBooking(BaseModel):
    """Fields visible to anonymous calendar viewers."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    date: str
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")
    title: str
    user_name: str = Field(alias="userName")

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value):
        return str(value)
