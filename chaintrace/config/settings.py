"""
Application settings and environment configuration.

Responsibilities:
- Read pipeline settings from environment variables (.env supported).
- Provide defaults for every optional setting.
- Convert settings into the PipelineConfig used by the orchestrator.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from chaintrace.config.env import get_env_float, get_env_int, get_env_str

if TYPE_CHECKING:
    from chaintrace.pipeline.orchestrator import PipelineConfig

DEFAULT_WINDOW_CAP = 300
DEFAULT_REFRESH_INTERVAL_SEC = 10.0
MIN_REFRESH_INTERVAL_SEC = 1.0
DEFAULT_SUSPICIOUS_CUTOFF = 0.5
DEFAULT_FEED_TIMEOUT_SEC = 15.0


@dataclass
class Settings:
    """
    Runtime settings.

    window_cap: Max transactions kept in the live rolling window.
    refresh_interval_sec: Seconds between live refresh ticks.
    suspicious_cutoff: Score above which a wallet counts as suspicious.
    feed_url: Default live JSON feed endpoint ("" = none).
    feed_timeout_sec: HTTP timeout for the live feed.
    known_exchanges_path: Exchange directory JSON ("" = bundled default).
    """

    window_cap: int = DEFAULT_WINDOW_CAP
    refresh_interval_sec: float = DEFAULT_REFRESH_INTERVAL_SEC
    suspicious_cutoff: float = DEFAULT_SUSPICIOUS_CUTOFF
    feed_url: str = ""
    feed_timeout_sec: float = DEFAULT_FEED_TIMEOUT_SEC
    known_exchanges_path: str = ""

    def __post_init__(self) -> None:
        self.window_cap = max(1, int(self.window_cap))
        self.refresh_interval_sec = max(MIN_REFRESH_INTERVAL_SEC, float(self.refresh_interval_sec))
        self.suspicious_cutoff = min(1.0, max(0.0, float(self.suspicious_cutoff)))

    def pipeline_config(self) -> "PipelineConfig":
        from chaintrace.pipeline.orchestrator import PipelineConfig

        return PipelineConfig(
            suspicious_cutoff=self.suspicious_cutoff,
            window_cap=self.window_cap,
        )


def get_settings() -> Settings:
    """Return settings built from the environment with defaults."""
    return Settings(
        window_cap=get_env_int("CHAINTRACE_WINDOW_CAP", DEFAULT_WINDOW_CAP),
        refresh_interval_sec=get_env_float("CHAINTRACE_REFRESH_INTERVAL_SEC", DEFAULT_REFRESH_INTERVAL_SEC),
        suspicious_cutoff=get_env_float("CHAINTRACE_SUSPICIOUS_CUTOFF", DEFAULT_SUSPICIOUS_CUTOFF),
        feed_url=get_env_str("CHAINTRACE_FEED_URL"),
        feed_timeout_sec=get_env_float("CHAINTRACE_FEED_TIMEOUT_SEC", DEFAULT_FEED_TIMEOUT_SEC),
        known_exchanges_path=get_env_str("KNOWN_EXCHANGES_PATH"),
    )
