"""
Pytest tests for environment-driven settings.
"""

from __future__ import annotations

import pytest

from chaintrace.config import Settings, get_settings

ENV_VARS = (
    "CHAINTRACE_WINDOW_CAP",
    "CHAINTRACE_REFRESH_INTERVAL_SEC",
    "CHAINTRACE_SUSPICIOUS_CUTOFF",
    "CHAINTRACE_FEED_URL",
    "CHAINTRACE_FEED_TIMEOUT_SEC",
    "KNOWN_EXCHANGES_PATH",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    s = get_settings()
    assert s.window_cap == 300
    assert s.refresh_interval_sec == 10.0
    assert s.suspicious_cutoff == 0.5
    assert s.feed_url == ""
    assert s.feed_timeout_sec == 15.0


def test_env_overrides(clean_env):
    clean_env.setenv("CHAINTRACE_WINDOW_CAP", "50")
    clean_env.setenv("CHAINTRACE_REFRESH_INTERVAL_SEC", "2.5")
    clean_env.setenv("CHAINTRACE_FEED_URL", " https://feed.test/txs ")
    s = get_settings()
    assert s.window_cap == 50
    assert s.refresh_interval_sec == 2.5
    assert s.feed_url == "https://feed.test/txs"


def test_invalid_values_fall_back_to_defaults(clean_env):
    clean_env.setenv("CHAINTRACE_WINDOW_CAP", "lots")
    clean_env.setenv("CHAINTRACE_SUSPICIOUS_CUTOFF", "high")
    s = get_settings()
    assert s.window_cap == 300
    assert s.suspicious_cutoff == 0.5


def test_values_are_clamped():
    s = Settings(window_cap=0, refresh_interval_sec=0.1, suspicious_cutoff=3)
    assert s.window_cap == 1
    assert s.refresh_interval_sec == 1.0
    assert s.suspicious_cutoff == 1.0


def test_pipeline_config_from_settings():
    cfg = Settings(window_cap=42, suspicious_cutoff=0.6).pipeline_config()
    assert cfg.window_cap == 42
    assert cfg.suspicious_cutoff == 0.6
