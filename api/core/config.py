"""
Environment-driven settings.

Everything is read lazily so tests can monkeypatch the environment.
"""

from __future__ import annotations

import os

DEFAULT_PAGE_LIMIT = 10
DEFAULT_MAX_PAGE_LIMIT = 100


def env_str(name: str, default: str = "") -> str:
    return os.environ.get(name, default).strip() or default


def env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def max_page_limit() -> int:
    value = env_int("MAX_PAGE_LIMIT", DEFAULT_MAX_PAGE_LIMIT)
    return value if value > 0 else DEFAULT_MAX_PAGE_LIMIT


def log_level() -> str:
    return env_str("LOG_LEVEL", "INFO").upper()


def cors_origins() -> list[str]:
    raw = env_str("CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]
