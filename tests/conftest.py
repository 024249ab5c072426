"""
Shared fixtures: an in-memory repository standing in for MongoDB, a fresh app
per test wired to it, and helpers for seeding users and issuing tokens.
"""

from __future__ import annotations

import copy
import operator
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from db.database import BOOKINGS, USERS, get_repository
from main import create_app
from models.user import User, UserRole
from services.access_codes import AccessCodeManager, get_access_code_manager
from services.passwords import PasswordManager
from services.rate_limit import AccessRateLimiter, get_access_rate_limiter
from services.security import create_user_token


_MISSING = object()
_COMPARE = {"$lt": operator.lt, "$lte": operator.le, "$gt": operator.gt, "$gte": operator.ge}


def _match_condition(value: Any, cond: Any) -> bool:
    if value is _MISSING:
        value = None
    if isinstance(cond, dict) and cond and all(k.startswith("$") for k in cond):
        for op, arg in cond.items():
            if op == "$ne":
                if value == arg:
                    return False
            elif op == "$in":
                if value not in arg:
                    return False
            elif op in _COMPARE:
                if value is None or not _COMPARE[op](value, arg):
                    return False
            else:
                raise NotImplementedError(op)
        return True
    return value == cond


def matches(doc: Dict[str, Any], query: Dict[str, Any]) -> bool:
    """Evaluate the subset of the MongoDB query language the app uses."""
    for key, cond in query.items():
        if key == "$or":
            if not any(matches(doc, sub) for sub in cond):
                return False
        elif key == "$and":
            if not all(matches(doc, sub) for sub in cond):
                return False
        elif not _match_condition(doc.get(key, _MISSING), cond):
            return False
    return True


def _project(doc: Dict[str, Any], projection: Optional[Dict[str, int]]) -> Dict[str, Any]:
    if not projection:
        return copy.deepcopy(doc)
    if all(v == 0 for v in projection.values()):
        return {k: copy.deepcopy(v) for k, v in doc.items() if k not in projection}
    keep = {k for k, v in projection.items() if v} | {"_id"}
    return {k: copy.deepcopy(v) for k, v in doc.items() if k in keep}


class FakeRepository:
    """Drop-in for BaseRepository backed by plain lists."""

    def __init__(self) -> None:
        self.collections: Dict[str, List[Dict[str, Any]]] = {USERS: [], BOOKINGS: []}

    def seed(self, collection: str, doc: Dict[str, Any]) -> Dict[str, Any]:
        now = datetime.now(timezone.utc)
        stored = {"_id": ObjectId(), "createdAt": now, "updatedAt": now, **doc}
        self.collections.setdefault(collection, []).append(stored)
        return copy.deepcopy(stored)

    def all(self, collection: str) -> List[Dict[str, Any]]:
        return copy.deepcopy(self.collections.get(collection, []))

    async def find_many(
        self,
        collection: str,
        query: Dict[str, Any] | None = None,
        *,
        projection: Optional[Dict[str, int]] = None,
        sort: Optional[Sequence[tuple[str, int]]] = None,
        limit: Optional[int] = None,
        skip: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        docs = [d for d in self.collections.get(collection, []) if matches(d, query or {})]
        for field, direction in reversed(list(sort or [])):
            docs.sort(key=lambda d: d.get(field), reverse=direction < 0)
        docs = docs[skip or 0:]
        if limit:
            docs = docs[:limit]
        return [_project(d, projection) for d in docs]

    async def find_one(
        self,
        collection: str,
        query: Dict[str, Any],
        *,
        projection: Optional[Dict[str, int]] = None,
    ) -> Optional[Dict[str, Any]]:
        for doc in self.collections.get(collection, []):
            if matches(doc, query):
                return _project(doc, projection)
        return None

    async def insert_one(self, collection: str, doc: Dict[str, Any], *, with_timestamps: bool = True) -> ObjectId:
        if with_timestamps:
            now = datetime.now(timezone.utc)
            doc.setdefault("createdAt", now)
            doc.setdefault("updatedAt", now)
        stored = copy.deepcopy(doc)
        stored.setdefault("_id", ObjectId())
        self.collections.setdefault(collection, []).append(stored)
        return stored["_id"]

    async def update_one(
        self,
        collection: str,
        filter_query: Dict[str, Any],
        update: Dict[str, Any],
        *,
        touch_updated_at: bool = True,
    ) -> Optional[Dict[str, Any]]:
        for doc in self.collections.get(collection, []):
            if matches(doc, filter_query):
                doc.update(update.get("$set", {}))
                if touch_updated_at:
                    doc["updatedAt"] = datetime.now(timezone.utc)
                return copy.deepcopy(doc)
        return None

    async def delete_one(self, collection: str, query: Dict[str, Any]) -> int:
        docs = self.collections.get(collection, [])
        for i, doc in enumerate(docs):
            if matches(doc, query):
                del docs[i]
                return 1
        return 0

    async def delete_many(self, collection: str, query: Dict[str, Any] | None = None) -> int:
        docs = self.collections.get(collection, [])
        keep = [d for d in docs if not matches(d, query or {})]
        deleted = len(docs) - len(keep)
        self.collections[collection] = keep
        return deleted


@pytest.fixture
def repo() -> FakeRepository:
    return FakeRepository()


@pytest.fixture
def fast_passwords() -> PasswordManager:
    """bcrypt at the minimum cost factor keeps hashing tests quick."""
    return PasswordManager(rounds=4)


@pytest.fixture
def access_codes(fast_passwords) -> AccessCodeManager:
    manager = AccessCodeManager(
        hashes={},
        plaintexts={
            UserRole.guest: "guest-code-123",
            UserRole.user: "user-code-123",
            UserRole.admin: "admin-code-123",
        },
        passwords=fast_passwords,
    )
    manager.initialize()
    return manager


@pytest.fixture
def access_limiter() -> AccessRateLimiter:
    return AccessRateLimiter(max_attempts=3, window_seconds=900)


@pytest.fixture
def app(repo, access_codes, access_limiter):
    application = create_app()
    application.dependency_overrides[get_repository] = lambda: repo
    application.dependency_overrides[get_access_code_manager] = lambda: access_codes
    application.dependency_overrides[get_access_rate_limiter] = lambda: access_limiter
    return application


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def make_user(repo):
    def _make(role: str = "user", name: str = "Test User", email: Optional[str] = None, **extra) -> User:
        doc = repo.seed(
            USERS,
            {
                "email": email or f"{ObjectId()}@example.com",
                "name": name,
                "picture": "",
                "role": role,
                **extra,
            },
        )
        return User(**doc)

    return _make


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> Dict[str, str]:
        return {"Authorization": f"Bearer {create_user_token(user)}"}

    return _headers


@pytest.fixture
def query_matches():
    return matches
