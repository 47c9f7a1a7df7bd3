"""
Structured logging for ChainTrace.

JSON logs with timestamp, event_type, wallet_id and pipeline stage.
Use get_logger() in every module for aggregation-friendly output.
"""

from chaintrace.chaintrace_logging.logger import bind_run, get_logger, short_wallet

__all__ = ["bind_run", "get_logger", "short_wallet"]
