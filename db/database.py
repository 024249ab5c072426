from __future__ import annotations

import logging
from functools import lru_cache

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING
from pymongo.errors import PyMongoError

from core.config import settings
from repositories.base import BaseRepository


logger = logging.getLogger(__name__)

USERS = "users"
BOOKINGS = "bookings"


@lru_cache(maxsize=1)
def get_motor_client() -> AsyncIOMotorClient:
    return AsyncIOMotorClient(settings.mongo_uri, appname="studio-calendar")


async def get_database() -> AsyncIOMotorDatabase:
    client = get_motor_client()
    return client[settings.database_name]


async def get_repository() -> BaseRepository:
    """FastAPI dependency; tests override it with an in-memory double."""
    db = await get_database()
    return BaseRepository(db)


async def close_database() -> None:
    client = get_motor_client()
    client.close()
    get_motor_client.cache_clear()


async def ping_database() -> bool:
    try:
        db = await get_database()
        await db.command("ping")
        return True
    except PyMongoError:
        logger.warning("db.ping_failed", exc_info=True)
        return False


async def ensure_indexes() -> None:
    db = await get_database()
    await db[BOOKINGS].create_index([("date", ASCENDING)])
    await db[BOOKINGS].create_index([("userId", ASCENDING)])
    await db[BOOKINGS].create_index([("date", ASCENDING), ("startTime", ASCENDING)])
    await db[USERS].create_index([("email", ASCENDING)], unique=True)
    await db[USERS].create_index([("googleId", ASCENDING)], unique=True, sparse=True)
    logger.info("db.indexes_ready", extra={"database": settings.database_name})
