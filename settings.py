from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple


_STORE_PATH_ENV = "SENSORS_STORE_PATH"
_ON_DUPLICATE_ENV = "SENSORS_ON_DUPLICATE"
_API_BASE_ENV = "SENSORS_API_BASE"
_PAGE_COUNT_ENV = "SENSORS_PAGE_COUNT"
_DATA_PATH_ENV = "SENSORS_DATA_PATH"
_CORS_ORIGINS_ENV = "CORS_ORIGINS"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_DUPLICATE_POLICIES = ("replace", "reject")


@dataclass(frozen=True)
class Settings:
    store_path: Optional[str]
    on_duplicate: str
    api_base: str
    page_count: int
    data_path: Optional[str]
    cors_origins: Tuple[str, ...]
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


def _read_page_count(default: int) -> int:
    value = os.getenv(_PAGE_COUNT_ENV)
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


def _read_on_duplicate(default: str) -> str:
    candidate = _read_str_env(_ON_DUPLICATE_ENV, default).lower()
    return candidate if candidate in _DUPLICATE_POLICIES else default


def _read_api_base(default: str) -> str:
    candidate = _read_str_env(_API_BASE_ENV, default).rstrip("/")
    if not candidate:
        return default
    return candidate if candidate.startswith("/") else f"/{candidate}"


def _read_cors_origins(default: Tuple[str, ...]) -> Tuple[str, ...]:
    value = os.getenv(_CORS_ORIGINS_ENV)
    if value is None:
        return default
    origins = tuple(part.strip() for part in value.split(",") if part.strip())
    return origins or default


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
    return Settings(
        store_path=_read_optional_env(_STORE_PATH_ENV, None),
        on_duplicate=_read_on_duplicate("replace"),
        api_base=_read_api_base("/sensors-info"),
        page_count=_read_page_count(5),
        data_path=_read_optional_env(_DATA_PATH_ENV, None),
        cors_origins=_read_cors_origins(("*",)),
        log_level=_read_log_level("INFO"),
    )
