from __future__ import annotations

import logging
import secrets
from functools import lru_cache
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import requests
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build

from core.config import AppSettings, settings
from db.database import USERS
from models.user import User, UserRole
from repositories.base import BaseRepository


logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_SCOPES = ["openid", "email", "profile"]


class GoogleOAuthError(Exception):
    """Raised with a short machine-readable reason (``no_token``, ``no_profile``)."""

    def __init__(self, reason: str, message: str = "") -> None:
        super().__init__(message or reason)
        self.reason = reason


def new_state() -> str:
    return secrets.token_urlsafe(24)


class GoogleOAuthClient:
    def __init__(self, client_id: str, client_secret: str, redirect_uri: str, timeout: float = 10.0) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "GoogleOAuthClient":
        return cls(settings.google_client_id, settings.google_client_secret, settings.google_callback_url)

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def authorization_url(self, state: str) -> str:
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "scope": " ".join(GOOGLE_SCOPES),
            "state": state,
            "access_type": "online",
            "prompt": "select_account",
        }
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    def exchange_code(self, code: str) -> Dict[str, Any]:
        data = {
            "code": code,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "redirect_uri": self.redirect_uri,
            "grant_type": "authorization_code",
        }
        try:
            response = requests.post(GOOGLE_TOKEN_URL, data=data, timeout=self.timeout)
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise GoogleOAuthError("no_token", f"token exchange failed: {exc}") from exc
        if not payload.get("access_token"):
            logger.error("oauth.token_exchange_failed", extra={"error": payload.get("error"), "status": response.status_code})
            raise GoogleOAuthError("no_token", "Google did not return an access token")
        return payload

    def fetch_profile(self, access_token: str) -> Dict[str, Any]:
        creds = Credentials(token=access_token)
        service = build("oauth2", "v2", credentials=creds, cache_discovery=False)
        profile = service.userinfo().get().execute()
        if not profile.get("email"):
            raise GoogleOAuthError("no_profile", "Google profile has no email")
        return profile


async def upsert_google_user(repo: BaseRepository, profile: Dict[str, Any]) -> User:
    google_id = str(profile.get("id") or profile.get("sub") or "")
    email = str(profile.get("email") or "").strip().lower()
    name = (profile.get("name") or email).strip()
    picture = profile.get("picture") or ""

    existing: Optional[Dict[str, Any]] = await repo.find_one(USERS, {"googleId": google_id}) if google_id else None
    if existing:
        return User(**existing)

    by_email = await repo.find_one(USERS, {"email": email})
    if by_email:
        # Account created by an admin before its first Google login
        updated = await repo.update_one(
            USERS,
            {"_id": by_email["_id"]},
            {"$set": {"googleId": google_id, "picture": by_email.get("picture") or picture}},
        )
        logger.info("oauth.user_linked", extra={"email": email})
        return User(**(updated or by_email))

    doc: Dict[str, Any] = {
        "googleId": google_id,
        "email": email,
        "name": name,
        "picture": picture,
        "role": UserRole.user.value,
    }
    inserted_id = await repo.insert_one(USERS, doc)
    doc["_id"] = inserted_id
    logger.info("oauth.user_created", extra={"email": email})
    return User(**doc)


@lru_cache(maxsize=1)
def get_google_client() -> GoogleOAuthClient:
    return GoogleOAuthClient.from_settings(settings)
