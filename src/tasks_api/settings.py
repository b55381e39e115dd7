from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - TASKS_MAX_BODY_BYTES: largest accepted request body in bytes (default: 512)
    - TASKS_LOCK_TIMEOUT: seconds to wait for the task store lock; 0 means
      try once without waiting (default: 1.0)
    - EMPTY_TITLE_STATUS: status returned for an empty title, 400 or 422 (default: 400)
    - LOG_LEVEL: logging level name (default: INFO)
    """

    cors_allow_origins: List[str]
    max_body_bytes: int
    lock_timeout: float
    empty_title_status: int
    log_level: str


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_int(value: str, default: int, minimum: int = 0) -> int:
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    return parsed if parsed >= minimum else default


def _parse_float(value: str, default: float) -> float:
    try:
        parsed = float(value.strip())
    except ValueError:
        return default
    return parsed if parsed >= 0 else default


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


def _parse_log_level(value: str) -> str:
    name = value.strip().upper()
    if isinstance(logging.getLevelName(name), int):
        return name
    return "INFO"


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    origins = _parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*"))
    max_body_bytes = _parse_int(_get_env("TASKS_MAX_BODY_BYTES", "512"), 512, minimum=1)
    lock_timeout = _parse_float(_get_env("TASKS_LOCK_TIMEOUT", "1.0"), 1.0)

    empty_title_status = _parse_int(_get_env("EMPTY_TITLE_STATUS", "400"), 400)
    if empty_title_status not in {400, 422}:
        # Only client-error statuses distinct from 404 are allowed
        empty_title_status = 400

    return Settings(
        cors_allow_origins=origins,
        max_body_bytes=max_body_bytes,
        lock_timeout=lock_timeout,
        empty_title_status=empty_title_status,
        log_level=_parse_log_level(_get_env("LOG_LEVEL", "INFO")),
    )
