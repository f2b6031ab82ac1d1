"""Runtime settings, read from the environment.

    CODEFLOW_API_URL                 base URL of the workspace backend
    CODEFLOW_ADMIN_TOKEN             bearer token sent on write requests
    CODEFLOW_TIMEOUT                 request timeout in seconds
    CODEFLOW_TOAST_SECONDS           notification lifetime
    CODEFLOW_SAVE_INDICATOR_SECONDS  minimum "Saving..." display after a save
    CODEFLOW_LOG_LEVEL               logging level name
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:8080"
DEFAULT_TIMEOUT = 15.0
DEFAULT_TOAST_SECONDS = 5.0
DEFAULT_SAVE_INDICATOR_SECONDS = 0.5


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r (not a number), using %s", name, raw, default)
        return default


@dataclass
class Settings:
    api_url: str = DEFAULT_API_URL
    admin_token: str = ""
    timeout: float = DEFAULT_TIMEOUT
    toast_seconds: float = DEFAULT_TOAST_SECONDS
    save_indicator_seconds: float = DEFAULT_SAVE_INDICATOR_SECONDS
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            api_url=os.environ.get("CODEFLOW_API_URL", DEFAULT_API_URL).rstrip("/"),
            admin_token=os.environ.get("CODEFLOW_ADMIN_TOKEN", ""),
            timeout=_env_float("CODEFLOW_TIMEOUT", DEFAULT_TIMEOUT),
            toast_seconds=_env_float("CODEFLOW_TOAST_SECONDS", DEFAULT_TOAST_SECONDS),
            save_indicator_seconds=_env_float(
                "CODEFLOW_SAVE_INDICATOR_SECONDS", DEFAULT_SAVE_INDICATOR_SECONDS
            ),
            log_level=os.environ.get("CODEFLOW_LOG_LEVEL", "INFO").upper(),
        )
