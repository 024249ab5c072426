from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

from bson import ObjectId

from db.database import BOOKINGS
from models.booking import BookingStatus
from repositories.base import BaseRepository


DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_RE = re.compile(r"^([0-1]?[0-9]|2[0-3]):([0-5][0-9])$")
MAX_YEAR = 9998


class InvalidSlotError(ValueError):
    pass


def normalize_time(value: str) -> str:
    """Zero-pad ``H:MM`` to ``HH:MM`` so string order matches clock order."""
    match = TIME_RE.match(value.strip())
    if not match:
        raise InvalidSlotError("Time must be in HH:MM format")
    hour, minute = match.groups()
    return f"{int(hour):02d}:{minute}"


def validate_slot(start_time: str, end_time: str) -> None:
    if start_time >= end_time:
        raise InvalidSlotError("Start time must be before end time")


def intervals_overlap(a_start: str, a_end: str, b_start: str, b_end: str) -> bool:
    return a_start < b_end and b_start < a_end


def overlap_query(
    date: str,
    start_time: str,
    end_time: str,
    exclude_id: Optional[ObjectId] = None,
) -> Dict[str, Any]:
    query: Dict[str, Any] = {
        "date": date,
        "status": BookingStatus.confirmed.value,
        "$or": [
            # existing booking starts before and runs past our start
            {"$and": [{"startTime": {"$lte": start_time}}, {"endTime": {"$gt": start_time}}]},
            # existing booking starts inside us and runs to or past our end
            {"$and": [{"startTime": {"$lt": end_time}}, {"endTime": {"$gte": end_time}}]},
            # existing booking sits entirely inside us
            {"$and": [{"startTime": {"$gte": start_time}}, {"endTime": {"$lte": end_time}}]},
        ],
    }
    if exclude_id is not None:
        query["_id"] = {"$ne": exclude_id}
    return query


async def find_conflicts(
    repo: BaseRepository,
    date: str,
    start_time: str,
    end_time: str,
    exclude_id: Optional[ObjectId] = None,
) -> List[Dict[str, Any]]:
    return await repo.find_many(
        BOOKINGS,
        overlap_query(date, start_time, end_time, exclude_id),
        sort=[("startTime", 1)],
    )


def month_bounds(year: int, month: int) -> tuple[str, str]:
    """Half-open ``[first, next_first)`` date strings for a calendar month."""
    if not 1 <= month <= 12:
        raise InvalidSlotError("Month must be between 1 and 12")
    # The upper bound must stay a four-digit year to sort correctly
    if not 1 <= year <= MAX_YEAR:
        raise InvalidSlotError(f"Year must be between 1 and {MAX_YEAR}")
    next_year, next_month = (year + 1, 1) if month == 12 else (year, month + 1)
    return f"{year:04d}-{month:02d}-01", f"{next_year:04d}-{next_month:02d}-01"
