from __future__ import annotations

from typing import Any, Dict, List

from bson import ObjectId
import logging
from fastapi import APIRouter, Depends, HTTPException, Path, status

from db.database import BOOKINGS, USERS, get_repository
from models.booking import Booking, BookingStatus
from models.user import User
from repositories.base import BaseRepository, parse_object_id
from schemas.auth import MessageResponse
from schemas.bookings import BookingCreate, BookingUpdate, PublicBooking
from services.bookings import (
    DATE_RE,
    InvalidSlotError,
    MAX_YEAR,
    find_conflicts,
    month_bounds,
    validate_slot,
)
from services.security import get_current_user, require_admin, require_booker


logger = logging.getLogger(__name__)
router = APIRouter(prefix="/bookings", tags=["bookings"])

CALENDAR_SORT = [("date", 1), ("startTime", 1)]
PUBLIC_FIELDS = {"date": 1, "startTime": 1, "endTime": 1, "title": 1, "userName": 1}


def _booking_oid(booking_id: str) -> ObjectId:
    oid = parse_object_id(booking_id)
    if oid is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid booking id")
    return oid


def _can_modify(user: User, booking: Dict[str, Any]) -> bool:
    return user.is_admin or str(booking.get("userId")) == str(user.id)


def _conflict(conflicts: List[Dict[str, Any]]) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail={
            "message": "Time slot conflicts with existing booking",
            "conflictingBookings": [Booking(**c).model_dump(by_alias=True, mode="json") for c in conflicts],
        },
    )


async def _attach_owners(repo: BaseRepository, docs: List[Dict[str, Any]]) -> List[Booking]:
    owner_ids = list({d["userId"] for d in docs if d.get("userId") is not None})
    owners: Dict[str, Dict[str, Any]] = {}
    if owner_ids:
        for u in await repo.find_many(USERS, {"_id": {"$in": owner_ids}}, projection={"name": 1, "email": 1}):
            owners[str(u["_id"])] = u
    return [Booking(**{**d, "user": owners.get(str(d.get("userId")))}) for d in docs]


@router.get("", response_model=List[Booking])
async def list_bookings(
    current_user: User = Depends(get_current_user),
    repo: BaseRepository = Depends(get_repository),
) -> List[Booking]:
    if current_user.is_admin:
        docs = await repo.find_many(BOOKINGS, {}, sort=CALENDAR_SORT)
        return await _attach_owners(repo, docs)
    docs = await repo.find_many(BOOKINGS, {"userId": ObjectId(current_user.id)}, sort=CALENDAR_SORT)
    return [Booking(**d) for d in docs]


@router.get("/date/{date}", response_model=List[PublicBooking])
async def bookings_for_date(date: str, repo: BaseRepository = Depends(get_repository)) -> List[PublicBooking]:
    if not DATE_RE.match(date):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid date format. Use YYYY-MM-DD")
    docs = await repo.find_many(
        BOOKINGS,
        {"date": date, "status": BookingStatus.confirmed.value},
        projection=PUBLIC_FIELDS,
        sort=[("startTime", 1)],
    )
    return [PublicBooking(**d) for d in docs]


@router.get("/month/{year}/{month}", response_model=List[Booking])
async def bookings_for_month(
    year: int = Path(..., ge=1, le=MAX_YEAR),
    month: int = Path(..., ge=1, le=12),
    current_user: User = Depends(get_current_user),
    repo: BaseRepository = Depends(get_repository),
) -> List[Booking]:
    first, next_first = month_bounds(year, month)
    docs = await repo.find_many(
        BOOKINGS,
        {"date": {"$gte": first, "$lt": next_first}, "status": {"$ne": BookingStatus.cancelled.value}},
        sort=CALENDAR_SORT,
    )
    return [Booking(**d) for d in docs]


@router.post("", response_model=Booking, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreate,
    current_user: User = Depends(require_booker),
    repo: BaseRepository = Depends(get_repository),
) -> Booking:
    try:
        validate_slot(payload.start_time, payload.end_time)
    except InvalidSlotError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    # Not atomic with the insert below; concurrent creates for one slot can both pass
    conflicts = await find_conflicts(repo, payload.date, payload.start_time, payload.end_time)
    if conflicts:
        logger.info("bookings.conflict", extra={"date": payload.date, "count": len(conflicts)})
        raise _conflict(conflicts)

    doc: Dict[str, Any] = {
        "date": payload.date,
        "startTime": payload.start_time,
        "endTime": payload.end_time,
        "userId": ObjectId(current_user.id),
        "userName": current_user.name.strip(),
        "title": payload.title,
        "description": payload.description,
        "status": BookingStatus.confirmed.value,
    }
    doc["_id"] = await repo.insert_one(BOOKINGS, doc)
    logger.info("bookings.created", extra={"booking_id": str(doc["_id"]), "user_id": str(current_user.id)})
    return Booking(**doc)


@router.delete("/admin/clear-all")
async def clear_all_bookings(
    admin: User = Depends(require_admin),
    repo: BaseRepository = Depends(get_repository),
) -> Dict[str, Any]:
    deleted = await repo.delete_many(BOOKINGS, {})
    logger.warning("bookings.cleared", extra={"admin_id": str(admin.id), "deleted": deleted})
    return {"message": "All bookings cleared", "deletedCount": deleted}


@router.put("/{booking_id}", response_model=Booking)
async def update_booking(
    booking_id: str,
    payload: BookingUpdate,
    current_user: User = Depends(get_current_user),
    repo: BaseRepository = Depends(get_repository),
) -> Booking:
    oid = _booking_oid(booking_id)
    existing = await repo.find_one(BOOKINGS, {"_id": oid})
    if not existing:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
    if not _can_modify(current_user, existing):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

    updates = payload.model_dump(exclude_unset=True, exclude_none=True, by_alias=True, mode="json")
    merged = {**existing, **updates}
    try:
        validate_slot(merged["startTime"], merged["endTime"])
    except InvalidSlotError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    slot_changed = any(merged.get(k) != existing.get(k) for k in ("date", "startTime", "endTime", "status"))
    if merged.get("status", BookingStatus.confirmed.value) == BookingStatus.confirmed.value and slot_changed:
        conflicts = await find_conflicts(repo, merged["date"], merged["startTime"], merged["endTime"], exclude_id=oid)
        if conflicts:
            raise _conflict(conflicts)

    if not updates:
        return Booking(**existing)
    updated = await repo.update_one(BOOKINGS, {"_id": oid}, {"$set": updates})
    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
    logger.info("bookings.updated", extra={"booking_id": booking_id, "fields": sorted(updates)})
    return Booking(**updated)


@router.delete("/{booking_id}", response_model=MessageResponse)
async def delete_booking(
    booking_id: str,
    current_user: User = Depends(get_current_user),
    repo: BaseRepository = Depends(get_repository),
) -> MessageResponse:
    oid = _booking_oid(booking_id)
    existing = await repo.find_one(BOOKINGS, {"_id": oid})
    if not existing:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
    if not _can_modify(current_user, existing):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

    await repo.delete_one(BOOKINGS, {"_id": oid})
    logger.info("bookings.deleted", extra={"booking_id": booking_id, "user_id": str(current_user.id)})
    return MessageResponse(message="Booking deleted successfully")
