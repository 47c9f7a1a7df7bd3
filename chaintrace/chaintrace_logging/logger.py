"""
Log setup for the analysis pipeline.

Every record carries an ISO timestamp, a level and an event_type taken from
the snake_case event name (``chains_extracted``, ``live_tick_done``, ...) plus
whatever keyword context the caller passes: wallet_id, run_id, stage, counts.
Records go to stderr so the CLI summary on stdout stays parseable.

LOG_LEVEL picks the threshold (default INFO). LOG_FORMAT=json (default) writes
one JSON object per line; any other value switches to the console renderer.

This module must not import other chaintrace modules; they all import it.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

import structlog

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL_VALUE = getattr(logging, LOG_LEVEL, logging.INFO)
LOG_FORMAT = os.getenv("LOG_FORMAT", "json").strip().lower()

WALLET_LOG_CHARS = 16

EventDict = dict[str, Any]


def _add_timestamp(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
    return event_dict


def _normalize_event(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Move structlog's ``event`` key to ``event_type``; mirror it as ``message``."""
    if "event_type" not in event_dict and "event" in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    if "event_type" in event_dict:
        event_dict.setdefault("message", str(event_dict["event_type"]))
    return event_dict


def _renderer(log_format: str) -> Any:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_structlog(level: int = LOG_LEVEL_VALUE, log_format: str = LOG_FORMAT) -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _add_timestamp,
            _normalize_event,
            _renderer(log_format),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Module logger with its name bound as ``logger``.

        logger = get_logger(__name__)
        logger.info("wallet_classified", wallet_id=short_wallet(addr), role="Mule")
    """
    return structlog.get_logger(name).bind(logger=name)


def short_wallet(wallet: str | None) -> str:
    wallet = wallet or ""
    if len(wallet) <= WALLET_LOG_CHARS:
        return wallet
    return wallet[:WALLET_LOG_CHARS] + "..."


def bind_run(run_id: int, source_type: str) -> structlog.BoundLogger:
    """Pipeline logger tagged with one analysis run."""
    return get_logger("chaintrace.pipeline").bind(run_id=run_id, source_type=source_type)
