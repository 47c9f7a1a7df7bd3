#!/usr/bin/env python3
"""
Run the laundering-chain analysis from the command line.

Usage:
  python -m chaintrace.tools.run_analysis batch ledger.csv [--output report.json]
  python -m chaintrace.tools.run_analysis demo
  python -m chaintrace.tools.run_analysis live --url https://feed/txs [--ticks 3]

Env: CHAINTRACE_FEED_URL, CHAINTRACE_REFRESH_INTERVAL_SEC, CHAINTRACE_WINDOW_CAP,
     CHAINTRACE_SUSPICIOUS_CUTOFF, KNOWN_EXCHANGES_PATH, LOG_LEVEL, LOG_FORMAT.
Logs go to stderr; the summary goes to stdout.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Sequence, TextIO

from chaintrace.analysis_engine import (
    AnalysisResult,
    SourceType,
    load_exchange_directory,
    result_to_json,
)
from chaintrace.chaintrace_logging import get_logger
from chaintrace.config import Settings, get_settings
from chaintrace.ingestion import (
    HttpLedgerFeed,
    generate_demo_ledger,
    load_ledger_file,
    parse_ledger_csv,
)
from chaintrace.pipeline import AnalysisPipeline, LiveSession, ProgressEvent, Stage

logger = get_logger(__name__)

_LIVE_SOURCES = {
    "eth": SourceType.LIVE_ETH,
    "btc": SourceType.LIVE_BTC,
    "global": SourceType.LIVE_GLOBAL,
}


def _log_progress(event: ProgressEvent) -> None:
    logger.info(
        "pipeline_progress",
        stage=event.stage.value,
        status=event.status.value,
        detail=event.message,
        progress=event.progress,
    )


def _build_pipeline(settings: Settings) -> AnalysisPipeline:
    pipeline = AnalysisPipeline(
        settings.pipeline_config(),
        exchanges=load_exchange_directory(settings.known_exchanges_path or None),
    )
    pipeline.subscribe(_log_progress)
    return pipeline


def print_summary(result: AnalysisResult, out: TextIO | None = None) -> None:
    """Human-readable run summary: totals, suspicious wallets, chains."""
    out = out or sys.stdout
    s = result.summary()
    print(
        f"{s['source_type']} | {s['transaction_count']} transactions | "
        f"{s['wallet_count']} wallets | volume {s['total_volume']:.2f} | "
        f"{s['suspicious_count']} suspicious | {s['chain_count']} chains",
        file=out,
    )
    for w in sorted(result.suspicious_wallets, key=lambda w: -w.suspicion_score):
        label = f" [{w.label}]" if w.label else ""
        print(
            f"  {w.address}{label}: {w.role.value} score={w.suspicion_score:.2f} "
            f"risk={w.risk_level.value} chain={w.chain_id}",
            file=out,
        )
        for flag in w.flags:
            print(f"    - {flag}", file=out)
    for chain in result.laundering_chains:
        print(
            f"  chain {chain.id}: {' -> '.join(chain.wallets)} (volume {chain.volume:.2f})",
            file=out,
        )


def _write_report(result: AnalysisResult, output: Path | None) -> None:
    if output is None:
        return
    output.write_text(result_to_json(result), encoding="utf-8")
    logger.info("report_written", path=str(output))


def _run_batch(args: argparse.Namespace, settings: Settings) -> int:
    pipeline = _build_pipeline(settings)
    if args.command == "demo":
        result = pipeline.run_from(lambda: parse_ledger_csv(generate_demo_ledger()))
    else:
        result = pipeline.run_from(lambda: load_ledger_file(args.path))
    if pipeline.stage is Stage.FAILED:
        print(f"ingestion failed: {getattr(args, 'path', 'demo ledger')}", file=sys.stderr)
        return 1
    print_summary(result)
    _write_report(result, args.output)
    return 0


async def _run_live(args: argparse.Namespace, settings: Settings) -> int:
    url = (args.url or settings.feed_url).strip()
    if not url:
        print("live mode needs --url or CHAINTRACE_FEED_URL", file=sys.stderr)
        return 2
    feed = HttpLedgerFeed(url, timeout=settings.feed_timeout_sec)
    session = LiveSession(
        feed,
        pipeline=_build_pipeline(settings),
        source_type=_LIVE_SOURCES[args.source],
        interval_sec=args.interval or settings.refresh_interval_sec,
        on_result=print_summary,
    )
    task = session.start(max_ticks=args.ticks)
    try:
        await task
    finally:
        await session.aclose()
    if session.result is not None:
        _write_report(session.result, args.output)
    return 0 if session.result is not None else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Detect laundering chains (smurfing / layering) in a transaction ledger.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    batch = sub.add_parser("batch", help="Analyse a ledger CSV file")
    batch.add_argument("path", type=Path, help="Ledger CSV (tx_id,from,to,amount,timestamp,token)")
    batch.add_argument("--output", type=Path, default=None, help="Write JSON report here")

    demo = sub.add_parser("demo", help="Analyse the built-in demo ledger")
    demo.add_argument("--output", type=Path, default=None, help="Write JSON report here")

    live = sub.add_parser("live", help="Poll a JSON feed and analyse a rolling window")
    live.add_argument("--url", default="", help="Feed URL (default CHAINTRACE_FEED_URL)")
    live.add_argument("--source", choices=sorted(_LIVE_SOURCES), default="global")
    live.add_argument("--interval", type=float, default=None, help="Seconds between ticks")
    live.add_argument("--ticks", type=int, default=None, help="Stop after N ticks (default: run until Ctrl-C)")
    live.add_argument("--output", type=Path, default=None, help="Write last JSON report here")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    if args.command == "live":
        try:
            return asyncio.run(_run_live(args, settings))
        except KeyboardInterrupt:
            logger.info("live_interrupted")
            return 0
    return _run_batch(args, settings)


if __name__ == "__main__":
    sys.exit(main())
