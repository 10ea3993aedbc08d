"""Session configuration via environment variables."""

from __future__ import annotations

from datetime import timedelta
from typing import Literal

from pydantic_settings import BaseSettings

from .cookies import CookieOptions
from .store import DynamoDBStore, MemoryStore, SessionStore

DEFAULT_LIFETIME_MINUTES = 24 * 60


class Settings(BaseSettings):
    idle_timeout_minutes: int = 0
    lifetime_minutes: int = DEFAULT_LIFETIME_MINUTES

    cookie_name: str = "session"
    cookie_domain: str = ""
    cookie_path: str = "/"
    cookie_http_only: bool = True
    cookie_secure: bool = False
    cookie_persist: bool = True
    cookie_same_site: Literal["lax", "strict", "none"] | None = "lax"

    store: str = "memory"  # "memory" or "dynamodb"
    cleanup_interval_seconds: int = 60
    dynamodb_table: str = "sessionkit_sessions"
    dynamodb_endpoint: str = ""  # For local DynamoDB
    dynamodb_region: str = "us-west-2"

    @property
    def idle_timeout(self) -> timedelta:
        if self.idle_timeout_minutes <= 0:
            return timedelta(0)
        return timedelta(minutes=self.idle_timeout_minutes)

    @property
    def lifetime(self) -> timedelta:
        if self.lifetime_minutes <= 0:
            return timedelta(minutes=DEFAULT_LIFETIME_MINUTES)
        return timedelta(minutes=self.lifetime_minutes)

    def cookie_options(self) -> CookieOptions:
        return CookieOptions(
            name=self.cookie_name,
            domain=self.cookie_domain,
            path=self.cookie_path,
            http_only=self.cookie_http_only,
            secure=self.cookie_secure,
            persist=self.cookie_persist,
            same_site=self.cookie_same_site,
        )

    def build_store(self) -> SessionStore:
        if self.store == "dynamodb":
            return DynamoDBStore(
                table_name=self.dynamodb_table,
                endpoint_url=self.dynamodb_endpoint,
                region_name=self.dynamodb_region,
            )
        if self.store == "memory":
            return MemoryStore(cleanup_interval=timedelta(seconds=self.cleanup_interval_seconds))
        raise ValueError(f"Unknown session store: {self.store!r}")

    model_config = {"env_prefix": "SESSION_", "case_sensitive": False}


settings: Settings | None = None


def get_settings() -> Settings:
    global settings
    if settings is None:
        settings = Settings()
    return settings


def override_settings(s: Settings | None) -> None:
    """For testing: inject a Settings instance (``None`` re-reads the environment)."""
    global settings
    settings = s
