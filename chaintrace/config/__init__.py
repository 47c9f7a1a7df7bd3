"""
Configuration management for ChainTrace.

Loads settings from environment variables and an optional .env file.
Exposes a single source of truth for pipeline and live-mode configuration.
"""

from chaintrace.config.env import load_chaintrace_env
from chaintrace.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings", "load_chaintrace_env"]
