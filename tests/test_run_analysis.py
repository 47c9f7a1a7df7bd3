"""
Pytest tests for the run_analysis command-line tool.
"""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest

from chaintrace.ingestion import generate_demo_ledger, parse_ledger_csv
from chaintrace.tools.run_analysis import build_parser, main


@pytest.fixture(autouse=True)
def _no_env_overrides(monkeypatch):
    for name in ("CHAINTRACE_FEED_URL", "CHAINTRACE_SUSPICIOUS_CUTOFF", "CHAINTRACE_WINDOW_CAP"):
        monkeypatch.delenv(name, raising=False)


def test_demo_prints_summary(capsys):
    assert main(["demo"]) == 0
    out = capsys.readouterr().out
    assert "5 suspicious" in out
    assert "1 chains" in out
    assert "Source_Alpha" in out
    assert "Civilian_Bob" not in out


def test_batch_writes_report(tmp_path, capsys):
    ledger = tmp_path / "ledger.csv"
    ledger.write_text(generate_demo_ledger(), encoding="utf-8")
    report = tmp_path / "report.json"
    assert main(["batch", str(ledger), "--output", str(report)]) == 0
    data = json.loads(report.read_text(encoding="utf-8"))
    assert data["summary"]["transaction_count"] == 8
    assert data["summary"]["chain_count"] == 1
    assert data["wallets"]["Aggregator_Omega"]["role"] == "Destination"


def test_batch_missing_file_fails(tmp_path, capsys):
    assert main(["batch", str(tmp_path / "missing.csv")]) == 1
    assert "ingestion failed" in capsys.readouterr().err


def test_live_without_url_exits_with_usage_error(capsys):
    assert main(["live", "--ticks", "1"]) == 2


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_live_single_tick_with_patched_feed(tmp_path, capsys):
    txs = parse_ledger_csv(generate_demo_ledger())

    async def fake_fetch():
        return txs

    report = tmp_path / "live.json"
    with patch("chaintrace.tools.run_analysis.HttpLedgerFeed", return_value=fake_fetch) as feed_cls:
        code = main(["live", "--url", "https://feed.test/txs", "--ticks", "1", "--source", "eth", "--output", str(report)])
    assert code == 0
    assert feed_cls.call_args.args[0] == "https://feed.test/txs"
    assert "LIVE_ETH" in capsys.readouterr().out
    assert json.loads(report.read_text(encoding="utf-8"))["summary"]["suspicious_count"] == 5
