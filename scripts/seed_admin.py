from __future__ import annotations

import argparse
import asyncio
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient

from core.config import settings
from db.database import USERS
from models.user import UserRole
from repositories.base import utcnow


async def upsert_admin(db, *, name: str, email: str) -> dict:
    """Create the admin user, or promote the existing user with that email."""
    email = email.strip().lower()
    existing: Optional[dict] = await db[USERS].find_one({"email": email})
    if existing:
        if existing.get("role") != UserRole.admin.value:
            await db[USERS].update_one(
                {"_id": existing["_id"]},
                {"$set": {"role": UserRole.admin.value, "updatedAt": utcnow()}},
            )
            existing["role"] = UserRole.admin.value
        return existing
    now = utcnow()
    doc = {
        "email": email,
        "name": name,
        "picture": "",
        "role": UserRole.admin.value,
        "createdAt": now,
        "updatedAt": now,
    }
    result = await db[USERS].insert_one(doc)
    doc["_id"] = result.inserted_id
    return doc


async def main(name: str, email: str) -> dict:
    client = AsyncIOMotorClient(settings.mongo_uri)
    try:
        return await upsert_admin(client[settings.database_name], name=name, email=email)
    finally:
        client.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create or promote a studio calendar admin")
    parser.add_argument("email")
    parser.add_argument("--name", default="Studio Admin")
    args = parser.parse_args()

    created = asyncio.run(main(args.name, args.email))
    print("Seeded admin:", {k: (str(v) if k == "_id" else v) for k, v in created.items()})
