"""
Application-level exceptions.

Only ingestion can fail: graph building, classification, scoring and chain
extraction are total over any normalized transaction list.
"""

from __future__ import annotations


class ChainTraceError(Exception):
    """Base class for ChainTrace errors."""


class IngestionError(ChainTraceError):
    """Raw input could not be read or parsed into transactions."""

    def __init__(self, message: str, *, source: str | None = None) -> None:
        super().__init__(message)
        self.source = source


class FeedUnavailableError(IngestionError):
    """Live feed transport failed (connection, HTTP status, timeout)."""
