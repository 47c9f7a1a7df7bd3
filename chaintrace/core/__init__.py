"""
Core utilities: shared exceptions used across ingestion, pipeline and tools.
"""

from chaintrace.core.exceptions import ChainTraceError, FeedUnavailableError, IngestionError

__all__ = ["ChainTraceError", "FeedUnavailableError", "IngestionError"]
