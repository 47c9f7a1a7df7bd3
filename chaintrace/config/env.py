"""
Environment variable loading for ChainTrace.

- Loads .env from the project root when available (python-dotenv).
- Typed getters with defaults; malformed values fall back to the default.
"""

from __future__ import annotations

import os
from pathlib import Path

from chaintrace.chaintrace_logging import get_logger

logger = get_logger(__name__)

# Project root: config is chaintrace/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_PACKAGE_DIR = _CONFIG_DIR.parent
_ROOT = _PACKAGE_DIR.parent
_ENV_PATH = _ROOT / ".env"


def load_chaintrace_env() -> None:
    """Load .env from project root. Safe to call multiple times; never overrides set vars."""
    from dotenv import load_dotenv

    if _ENV_PATH.is_file():
        load_dotenv(_ENV_PATH, override=False)


def get_env_str(name: str, default: str = "") -> str:
    load_chaintrace_env()
    return (os.getenv(name) or default).strip()


def get_env_int(name: str, default: int) -> int:
    raw = get_env_str(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("config_invalid_int", name=name, value=raw, default=default)
        return default


def get_env_float(name: str, default: float) -> float:
    raw = get_env_str(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("config_invalid_float", name=name, value=raw, default=default)
        return default
