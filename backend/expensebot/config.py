from functools import lru_cache
import json
from pathlib import Path
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator

_PACKAGE_DIR = Path(__file__).resolve().parent


def _load_env_file() -> Path | None:
    """Load the first ``.env`` found at the repo root, ``backend/`` or the cwd."""
    for candidate in (_PACKAGE_DIR.parent.parent / ".env", _PACKAGE_DIR.parent / ".env", Path.cwd() / ".env"):
        if candidate.is_file():
            load_dotenv(candidate, override=False)
            return candidate
    return None


_load_env_file()


def _split_list(value: str) -> list[str]:
    text = value.strip()
    if text.startswith("["):
        try:
            return [str(item) for item in json.loads(text)]
        except json.JSONDecodeError:
            pass
    return [part.strip() for part in text.split(",") if part.strip()]


class Settings(BaseSettings):
    """Bot and dashboard API configuration, read from the environment."""

    database_url: str = "postgresql+psycopg://postgres:postgres@db:5432/expenses"
    api_prefix: str = "/api"
    allow_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:8080"]
    )

    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 30
    session_token_expire_minutes: int = 60 * 24
    token_backend: Literal["database", "memory"] = "database"

    telegram_bot_token: str | None = Field(default=None, alias="TELEGRAM_BOT_TOKEN")
    dashboard_url: str = "http://localhost:8080"
    shared_secret: str = "change-me"
    require_pin_for_dashboard: bool = False

    timezone: str = "Asia/Singapore"
    default_currency_symbol: str = "$"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=None, populate_by_name=True)

    @field_validator("allow_origins", mode="before")
    @classmethod
    def parse_allow_origins(cls, value: object) -> list[str]:
        if isinstance(value, str):
            return _split_list(value)
        if isinstance(value, (list, tuple)):
            return [str(item) for item in value]
        raise ValueError("allow_origins must be a JSON list or a comma-separated string.")

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value


@lru_cache
def get_settings() -> Settings:
    """Return cached settings to avoid repeated environment parsing."""
    return Settings()
