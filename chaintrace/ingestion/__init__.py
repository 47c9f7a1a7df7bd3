# Ingestion boundary: ledger text / feed records -> normalized Transaction lists.

from chaintrace.ingestion.feed import HttpLedgerFeed
from chaintrace.ingestion.normalizer import (
    LEDGER_COLUMNS,
    load_ledger_file,
    normalize_records,
    parse_ledger_csv,
)
from chaintrace.ingestion.sample_data import generate_demo_ledger

__all__ = [
    "HttpLedgerFeed",
    "LEDGER_COLUMNS",
    "generate_demo_ledger",
    "load_ledger_file",
    "normalize_records",
    "parse_ledger_csv",
]
