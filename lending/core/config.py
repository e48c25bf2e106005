"""Human-friendly configuration loader.

The ``AppSettings`` class centralises every environment variable we rely on.

*What:* Which settings exist and what do they control?
*When:* They are read when :func:`get_settings` is first called.
*Why:* Centralising configuration prevents magic strings scattered all over the
codebase.
*How:* ``pydantic-settings`` reads the environment (and ``.env`` files) and
validates each value against the annotated type.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Environment-driven application configuration."""

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "Equipment Lending"
    APP_ENV: str = "dev"

    BASE_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parent.parent)
    DATA_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parents[2] / "data")
    TEMPLATES_DIR: Path | None = None
    STATIC_DIR: Path | None = None
    TZ: str = "UTC"

    # Database URL defaults to SQLite under DATA_DIR so local runs work
    # out-of-the-box. Any SQLAlchemy URL is accepted.
    DB_URL: str = Field(default="", validation_alias=AliasChoices("DATABASE_URL", "DB_URL"))
    # SQLite ignores foreign keys unless asked; leaving it off keeps deletes of
    # equipment with loan history working the same on every backend.
    SQLITE_FOREIGN_KEYS: bool = False

    # Restore ``available`` for ACTIVE loans when the history is cleared.
    RECONCILE_ON_CLEAR_HISTORY: bool = False

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    HOST: str = "0.0.0.0"
    PORT: int = 8090

    ALLOWED_ORIGINS: list[str] = Field(default_factory=list)

    def _resolve_path(self, base: Path | None, fallback: Path) -> Path:
        return base if base is not None else fallback

    @property
    def templates_dir(self) -> Path:
        return self._resolve_path(self.TEMPLATES_DIR, self.BASE_DIR / "templates")

    @property
    def static_dir(self) -> Path:
        return self._resolve_path(self.STATIC_DIR, self.BASE_DIR / "static")

    @property
    def database_url(self) -> str:
        return self.DB_URL or f"sqlite:///{self.DATA_DIR / 'lending.db'}"

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_allowed_origins(cls, value: Any) -> list[str]:
        if value in (None, "", []):
            return []
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        if isinstance(value, Iterable):
            return [str(item).strip() for item in value if str(item).strip()]
        raise TypeError("ALLOWED_ORIGINS must be a comma separated string or list")

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    settings = AppSettings()
    if not settings.DB_URL:
        settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
    return settings


def reset_settings_cache() -> None:
    """Forget the cached settings so the next call re-reads the environment."""

    get_settings.cache_clear()
