from __future__ import annotations

from functools import lru_cache
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import List
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


class Settings(BaseSettings):
    # Core
    app_name: str = Field(default="bistro-server")
    environment: str = Field(default="dev")  # dev|staging|prod
    log_json: bool = Field(default=True)
    log_level: str = Field(default="INFO")

    # Auth (OIDC bearer tokens)
    auth_issuer: str | None = Field(default=None)
    auth_jwks_url: str | None = Field(default=None)
    auth_audience: str | None = Field(default=None)
    auth_disable_verification: bool = Field(default=False)
    dev_user_id: str | None = Field(default="demo_user")
    allow_request_user_fallback: bool = Field(default=True)

    # Data
    database_url: str | None = Field(default=None)

    # Menu
    menu_timezone: str | None = Field(default=None)  # IANA name; process local time when unset

    # API
    cors_allowed_origins: List[str] = Field(default_factory=lambda: ["*"])
    rate_limit_enabled: bool = Field(default=True)

    # Observability
    sentry_dsn: str | None = Field(default=None)
    sentry_traces_sample_rate: float = Field(default=0.0)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    @field_validator("cors_allowed_origins", mode="before")
    @classmethod
    def _csv_to_list(cls, v):
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("menu_timezone")
    @classmethod
    def _known_timezone(cls, v):
        if v:
            try:
                ZoneInfo(v)
            except (ZoneInfoNotFoundError, ValueError) as exc:
                raise ValueError(f"unknown IANA timezone: {v!r}") from exc
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()
