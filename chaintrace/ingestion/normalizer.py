"""
Ledger normalizer: raw delimited text or record dicts to Transaction lists.

CSV input is positional: the first six columns are read as
tx_id, from_wallet, to_wallet, amount, timestamp, token regardless of the
header names. Record input (live feeds) is matched by field name with common
aliases. Rows with an empty id or endpoint, a non-numeric, negative or infinite
amount, or an unparseable or out-of-range timestamp are dropped and logged;
duplicate ids keep the first occurrence. Input order is preserved.
"""

from __future__ import annotations

import io
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Mapping

import pandas as pd

from chaintrace.analysis_engine.models import Transaction
from chaintrace.chaintrace_logging import get_logger
from chaintrace.core.exceptions import IngestionError

logger = get_logger(__name__)

LEDGER_COLUMNS = ("tx_id", "from_wallet", "to_wallet", "amount", "timestamp", "token")
DEFAULT_TOKEN = "UNKNOWN"
# Epoch values above this are taken as milliseconds
_EPOCH_MS_THRESHOLD = 1e11
# pandas nanosecond timestamps end in 2262
_EPOCH_MAX_SECONDS = 9e9

FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "tx_id": ("tx_id", "id", "txid", "hash", "transaction_id"),
    "from_wallet": ("from_wallet", "from", "sender", "sender_id"),
    "to_wallet": ("to_wallet", "to", "receiver", "receiver_id"),
    "amount": ("amount", "value"),
    "timestamp": ("timestamp", "time", "block_time", "blockTime"),
    "token": ("token", "symbol", "asset"),
    "block_number": ("block_number", "blockNumber", "block"),
}


def _parse_timestamps(values: pd.Series) -> pd.Series:
    """
    ISO-8601 strings or Unix epoch (seconds or milliseconds) -> UTC timestamps.

    Epochs outside the representable range come back as NaT.
    """
    values = values.fillna("").astype(str).str.strip()
    numeric = pd.to_numeric(values, errors="coerce")
    is_numeric = numeric.notna()
    seconds = numeric.where(numeric.abs() < _EPOCH_MS_THRESHOLD, numeric / 1000.0)
    seconds = seconds.where(seconds.abs() < _EPOCH_MAX_SECONDS)
    from_epoch = pd.to_datetime(seconds, unit="s", utc=True, errors="coerce")
    from_text = pd.to_datetime(
        values.where(~is_numeric, ""), utc=True, errors="coerce", format="mixed"
    )
    return from_text.where(~is_numeric, from_epoch)


def _clean_frame(frame: pd.DataFrame, default_token: str) -> list[Transaction]:
    """Validate and type-cast a ledger frame; returns transactions in row order."""
    if frame.empty:
        return []
    cleaned = frame.copy()
    for col in ("tx_id", "from_wallet", "to_wallet", "token"):
        cleaned[col] = cleaned[col].fillna("").astype(str).str.strip()
    cleaned["amount"] = pd.to_numeric(cleaned["amount"], errors="coerce")
    cleaned["timestamp"] = _parse_timestamps(cleaned["timestamp"])

    valid = (
        (cleaned["tx_id"] != "")
        & (cleaned["from_wallet"] != "")
        & (cleaned["to_wallet"] != "")
        & cleaned["amount"].notna()
        & (cleaned["amount"] >= 0)
        & (cleaned["amount"] != float("inf"))
        & cleaned["timestamp"].notna()
    )
    dropped = int((~valid).sum())
    if dropped:
        logger.warning("ledger_rows_dropped", dropped=dropped, kept=int(valid.sum()))
    cleaned = cleaned[valid]

    duplicated = cleaned["tx_id"].duplicated(keep="first")
    if duplicated.any():
        logger.warning("ledger_duplicate_ids_dropped", dropped=int(duplicated.sum()))
        cleaned = cleaned[~duplicated]

    cleaned = cleaned.assign(token=cleaned["token"].where(cleaned["token"] != "", default_token))
    if "block_number" in cleaned.columns:
        blocks = pd.to_numeric(cleaned["block_number"], errors="coerce")
        blocks = blocks.where(blocks.abs() != float("inf"))
    else:
        blocks = pd.Series([float("nan")] * len(cleaned), index=cleaned.index)

    transactions: list[Transaction] = []
    for row, block in zip(cleaned.itertuples(index=False), blocks):
        transactions.append(
            Transaction(
                id=row.tx_id,
                from_wallet=row.from_wallet,
                to_wallet=row.to_wallet,
                amount=float(row.amount),
                timestamp=row.timestamp.to_pydatetime(),
                token=row.token,
                block_number=None if pd.isna(block) else int(block),
            )
        )
    return transactions


def _convert(frame: pd.DataFrame, default_token: str, source: str) -> list[Transaction]:
    try:
        return _clean_frame(frame, default_token)
    except (OverflowError, pd.errors.OutOfBoundsDatetime) as e:
        raise IngestionError(f"ledger values out of range: {e}", source=source) from e


def parse_ledger_csv(text: str, *, default_token: str = DEFAULT_TOKEN) -> list[Transaction]:
    """
    Parse delimited ledger text (header row + records) into transactions.

    Empty input or a header with fewer than six columns yields an empty list.
    Raises IngestionError when the text cannot be tokenised at all.
    """
    text = (text or "").lstrip("\ufeff")
    if not text.strip():
        return []
    try:
        df = pd.read_csv(
            io.StringIO(text),
            dtype=str,
            keep_default_na=False,
            skipinitialspace=True,
            on_bad_lines="skip",
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError, ValueError) as e:
        raise IngestionError(f"unreadable ledger text: {e}", source="csv") from e

    if df.shape[1] < len(LEDGER_COLUMNS):
        logger.warning("ledger_too_few_columns", columns=list(df.columns), required=len(LEDGER_COLUMNS))
        return []
    frame = df.iloc[:, : len(LEDGER_COLUMNS)].copy()
    frame.columns = list(LEDGER_COLUMNS)
    transactions = _convert(frame, default_token, "csv")
    logger.info("ledger_parsed", rows=len(df), transactions=len(transactions))
    return transactions


def load_ledger_file(path: str | Path, *, default_token: str = DEFAULT_TOKEN) -> list[Transaction]:
    """Read a ledger file (BOM-safe UTF-8) and parse it. Unreadable file -> IngestionError."""
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8-sig", errors="replace")
    except OSError as e:
        raise IngestionError(f"cannot read ledger file {p}: {e}", source=str(p)) from e
    return parse_ledger_csv(text, default_token=default_token)


def _pick(record: Mapping[str, Any], aliases: tuple[str, ...]) -> Any:
    for key in aliases:
        value = record.get(key)
        if value is not None:
            return value
    return None


def normalize_records(
    records: Iterable[Any],
    *,
    default_token: str = DEFAULT_TOKEN,
) -> list[Transaction]:
    """Normalize feed records (dicts with original or aliased field names) into transactions."""
    rows: list[dict[str, Any]] = []
    skipped = 0
    for record in records:
        if not isinstance(record, Mapping):
            skipped += 1
            continue
        row = {name: _pick(record, aliases) for name, aliases in FIELD_ALIASES.items()}
        ts = row["timestamp"]
        if isinstance(ts, datetime):
            row["timestamp"] = ts.isoformat()
        for key in ("tx_id", "from_wallet", "to_wallet", "timestamp", "token"):
            row[key] = "" if row[key] is None else str(row[key])
        rows.append(row)
    if skipped:
        logger.warning("feed_records_skipped", skipped=skipped, reason="not_a_mapping")
    if not rows:
        return []
    frame = pd.DataFrame(rows, columns=list(FIELD_ALIASES))
    return _convert(frame, default_token, "feed")
