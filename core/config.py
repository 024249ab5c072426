from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field, AliasChoices
from pydantic_settings import BaseSettings, SettingsConfigDict


load_dotenv()


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    # Accept MONGODB_URI (preferred) or MONGO_URI
    mongo_uri: str = Field(
        default="mongodb://localhost:27017",
        validation_alias=AliasChoices("MONGODB_URI", "MONGO_URI"),
    )
    database_name: str = Field(
        default="studio_calendar",
        validation_alias=AliasChoices("MONGO_DB_NAME", "DATABASE_NAME"),
    )

    # Auth / JWT
    jwt_secret_key: str = Field(
        default="studio-calendar-dev-secret",
        validation_alias=AliasChoices("JWT_SECRET", "JWT_SECRET_KEY"),
    )
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=24 * 60, alias="ACCESS_TOKEN_EXPIRE_MINUTES"
    )

    # Google OAuth
    google_client_id: str = Field(default="", alias="GOOGLE_CLIENT_ID")
    google_client_secret: str = Field(default="", alias="GOOGLE_CLIENT_SECRET")
    google_callback_url: str = Field(
        default="http://localhost:5000/api/auth/google/callback",
        alias="GOOGLE_CALLBACK_URL",
    )

    # Frontend + CORS
    frontend_url: str = Field(default="http://localhost:3000", alias="FRONTEND_URL")
    allowed_origins: Optional[str] = Field(default=None, alias="ALLOWED_ORIGINS")

    # Access codes: each role needs a plaintext code or a bcrypt hash
    guest_access_code: Optional[str] = Field(default=None, alias="GUEST_ACCESS_CODE")
    user_access_code: Optional[str] = Field(default=None, alias="USER_ACCESS_CODE")
    admin_access_code: Optional[str] = Field(default=None, alias="ADMIN_ACCESS_CODE")
    guest_access_code_hash: Optional[str] = Field(default=None, alias="GUEST_ACCESS_CODE_HASH")
    user_access_code_hash: Optional[str] = Field(default=None, alias="USER_ACCESS_CODE_HASH")
    admin_access_code_hash: Optional[str] = Field(default=None, alias="ADMIN_ACCESS_CODE_HASH")

    # Rate limiting
    access_max_attempts: int = Field(default=5, alias="ACCESS_MAX_ATTEMPTS")
    access_window_seconds: int = Field(default=15 * 60, alias="ACCESS_WINDOW_SECONDS")
    api_rate_limit: int = Field(default=100, alias="API_RATE_LIMIT")
    api_rate_window_seconds: int = Field(default=15 * 60, alias="API_RATE_WINDOW_SECONDS")

    environment: Literal["development", "production", "test"] = Field(
        default="development", alias="ENVIRONMENT"
    )
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    app_version: str = Field(default="1.0.0", alias="APP_VERSION")

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def cors_origins(self) -> list[str]:
        raw = (self.allowed_origins or self.frontend_url).strip()
        if raw in {"*", '"*"'}:
            return ["*"]
        return [o.strip() for o in raw.split(",") if o.strip()]


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return AppSettings()


settings = get_settings()
