from __future__ import annotations

import os
from typing import List
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = Field("postgresql://localhost/lifereset30", alias="DATABASE_URL")
    backend_session_secret: str | None = Field(None, alias="BACKEND_SESSION_SECRET")

    timezone_name: str = Field("UTC", alias="LIFERESET_TIMEZONE")
    demo_user_id: str = Field("demo@lifereset30.com", alias="DEMO_USER_ID")
    allowed_user_ids_raw: str = Field("", alias="ALLOWED_USER_IDS")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def allowed_user_ids(self) -> List[str]:
        return [item.strip().lower() for item in self.allowed_user_ids_raw.split(",") if item.strip()]

    @property
    def timezone(self) -> ZoneInfo:
        try:
            return ZoneInfo(self.timezone_name)
        except (ZoneInfoNotFoundError, ValueError):
            return ZoneInfo("UTC")


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    global _settings
    _settings = None


# For local dev convenience only.
if os.getenv("BACKEND_DEBUG_SETTINGS"):
    print(get_settings())
