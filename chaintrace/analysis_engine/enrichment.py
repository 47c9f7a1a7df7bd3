"""
Known-exchange directory: injectable address -> label lookup.

Loaded from a JSON object ({"address": "label"}) pointed to by
KNOWN_EXCHANGES_PATH, or passed in directly. Labels are informational: they
annotate wallet profiles for reviewers and never change role, flags or score.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Iterable, Mapping

from chaintrace.analysis_engine.models import WalletProfile
from chaintrace.chaintrace_logging import get_logger

logger = get_logger(__name__)

DEFAULT_KNOWN_EXCHANGES_PATH = Path(__file__).resolve().parent.parent / "data" / "known_exchanges.json"


def _normalize_address(address: str) -> str:
    # EVM hex addresses are case-insensitive; base58 ones are not
    address = address.strip()
    return address.lower() if address[:2].lower() == "0x" else address


class ExchangeDirectory:
    """Read-only mapping of wallet addresses to exchange labels."""

    def __init__(self, labels: Mapping[str, str] | None = None) -> None:
        self._labels: dict[str, str] = {}
        for address, label in (labels or {}).items():
            if address and label:
                self._labels[_normalize_address(str(address))] = str(label).strip()

    def __len__(self) -> int:
        return len(self._labels)

    def __contains__(self, address: object) -> bool:
        return isinstance(address, str) and _normalize_address(address) in self._labels

    def label_for(self, address: str) -> str | None:
        return self._labels.get(_normalize_address(address))

    def annotate(self, wallets: Mapping[str, WalletProfile] | Iterable[WalletProfile]) -> int:
        """Set label on every known wallet; returns how many were labelled."""
        profiles = wallets.values() if isinstance(wallets, Mapping) else wallets
        labelled = 0
        for profile in profiles:
            profile.label = self.label_for(profile.address)
            if profile.label is not None:
                labelled += 1
        return labelled


def load_exchange_directory(path: str | Path | None = None) -> ExchangeDirectory:
    """
    Load the exchange directory from JSON. Missing or invalid file -> empty directory.

    Path order: explicit argument > KNOWN_EXCHANGES_PATH env > bundled default.
    """
    path_str = str(path) if path else (os.getenv("KNOWN_EXCHANGES_PATH", "").strip() or str(DEFAULT_KNOWN_EXCHANGES_PATH))
    p = Path(path_str)
    if not p.is_file():
        logger.debug("exchange_directory_missing", path=path_str)
        return ExchangeDirectory()
    try:
        with open(p, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("exchange_directory_load_failed", path=path_str, error=str(e))
        return ExchangeDirectory()
    if not isinstance(data, dict):
        logger.warning("exchange_directory_invalid", path=path_str, type=type(data).__name__)
        return ExchangeDirectory()
    directory = ExchangeDirectory(data)
    logger.debug("exchange_directory_loaded", path=path_str, entries=len(directory))
    return directory
