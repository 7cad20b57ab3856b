from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_DATABASE_URL_ENV = "DATABASE_URL"
_SITE_PASSWORD_ENV = "SITE_PASSWORD"
_PROTECTION_ENV = "PASSWORD_PROTECTION_ENABLED"
_SESSION_SECRET_ENV = "SESSION_SECRET"
_COOKIE_SECURE_ENV = "SESSION_COOKIE_SECURE"
_WORKER_COUNT_ENV = "SNAPSHOT_WORKER_COUNT"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    database_url: str
    site_password: Optional[str]
    password_protection_enabled: bool
    session_secret: Optional[str]
    session_cookie_secure: bool
    snapshot_workers: int
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if not candidate:
        return default
    if candidate in {"0", "false", "no", "off"}:
        return False
    if candidate in {"1", "true", "yes", "on"}:
        return True
    return default


def _read_worker_count(default: int) -> int:
    value = os.getenv(_WORKER_COUNT_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    site_password = _read_optional_env(_SITE_PASSWORD_ENV, None)
    return Settings(
        database_url=_read_str_env(_DATABASE_URL_ENV, "sqlite:///./tmp/messstation.db"),
        site_password=site_password,
        # Only an explicit "false" switches the gate off.
        password_protection_enabled=_read_flag(_PROTECTION_ENV, True),
        session_secret=_read_optional_env(_SESSION_SECRET_ENV, site_password),
        session_cookie_secure=_read_flag(_COOKIE_SECURE_ENV, False),
        snapshot_workers=_read_worker_count(4),
        log_level=_read_log_level("INFO"),
    )
