from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


load_dotenv()


def _env(name: str, default: str | None = None) -> str | None:
    return os.getenv(name, default)


def _csv(name: str) -> tuple[str, ...]:
    value = _env(name)
    if not value:
        return ()
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    postgres_dsn: str
    jwt_secret: str
    environment: str
    log_level: str
    break_glass_emails: tuple[str, ...]
    feature_check_cache_ttl_seconds: float
    feature_check_timeout_seconds: float
    api_base_url: str
    cors_origins: tuple[str, ...]

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


def get_settings() -> Settings:
    return Settings(
        postgres_dsn=_env("POSTGRES_DSN", ""),
        jwt_secret=_env("JWT_SECRET", ""),
        environment=_env("ENVIRONMENT", "development").strip().lower(),
        log_level=_env("LOG_LEVEL", "INFO").strip().upper(),
        break_glass_emails=_csv("BREAK_GLASS_EMAILS"),
        feature_check_cache_ttl_seconds=float(_env("FEATURE_CHECK_CACHE_TTL_SECONDS", "30")),
        feature_check_timeout_seconds=float(_env("FEATURE_CHECK_TIMEOUT_SECONDS", "5")),
        api_base_url=_env("API_BASE_URL", "http://localhost:8000"),
        cors_origins=_csv("CORS_ORIGINS"),
    )
