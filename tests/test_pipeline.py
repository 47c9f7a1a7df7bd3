"""
Pytest tests for the analysis pipeline orchestrator.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from chaintrace.analysis_engine.enrichment import ExchangeDirectory
from chaintrace.analysis_engine.models import RiskLevel, Role, SourceType
from chaintrace.core.exceptions import IngestionError
from chaintrace.ingestion import parse_ledger_csv
from chaintrace.pipeline import (
    AnalysisPipeline,
    PipelineConfig,
    Stage,
    StageStatus,
)

FIXED_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_smurfing_scenario(smurfing_ledger):
    result = AnalysisPipeline().run(smurfing_ledger)
    w = result.wallets
    assert w["A"].role is Role.SOURCE
    assert w["C"].role is Role.DESTINATION
    assert all(w[b].role is Role.MULE for b in ("B1", "B2", "B3"))
    assert all(any(f.startswith("Rapid relay") for f in w[b].flags) for b in ("B1", "B2", "B3"))
    assert result.suspicious_count == 5
    assert len(result.laundering_chains) == 1
    assert result.laundering_chains[0].wallet_set == {"A", "B1", "B2", "B3", "C"}
    assert result.laundering_chains[0].volume == pytest.approx(5985)
    assert result.total_volume == pytest.approx(5985)
    assert result.source_type is SourceType.CSV


def test_civilian_scenario(civilian_ledger):
    result = AnalysisPipeline().run(civilian_ledger)
    assert {w.role for w in result.wallets.values()} == {Role.NORMAL}
    assert result.suspicious_count == 0
    assert result.laundering_chains == ()
    assert {w.risk_level for w in result.wallets.values()} == {RiskLevel.LOW}


def test_empty_input_gives_valid_empty_result():
    pipeline = AnalysisPipeline()
    result = pipeline.run([])
    assert len(result.wallets) == 0
    assert result.transactions == ()
    assert result.total_volume == 0
    assert result.suspicious_count == 0
    assert result.laundering_chains == ()
    assert pipeline.stage is Stage.DONE


def test_progress_events_follow_stage_order(smurfing_ledger):
    pipeline = AnalysisPipeline()
    events = []
    pipeline.subscribe(events.append)
    pipeline.run(smurfing_ledger)

    stages = [e.stage for e in events if e.status is StageStatus.PROCESSING]
    assert stages == [
        Stage.INGESTING,
        Stage.BUILDING_TOPOLOGY,
        Stage.CLASSIFYING_PATTERNS,
        Stage.SCORING_RISK,
        Stage.EXTRACTING_CHAINS,
    ]
    assert events[-1].stage is Stage.DONE
    assert events[-1].status is StageStatus.COMPLETED
    assert events[-1].progress == 1.0
    progress = [e.progress for e in events]
    assert progress == sorted(progress)


def test_unsubscribe_stops_events(civilian_ledger):
    pipeline = AnalysisPipeline()
    events = []
    unsubscribe = pipeline.subscribe(events.append)
    unsubscribe()
    unsubscribe()
    pipeline.run(civilian_ledger)
    assert events == []


def test_failing_subscriber_does_not_affect_result(smurfing_ledger):
    pipeline = AnalysisPipeline()
    seen = []

    def broken(event):
        raise RuntimeError("ui crashed")

    pipeline.subscribe(broken)
    pipeline.subscribe(seen.append)
    result = pipeline.run(smurfing_ledger)
    assert result.suspicious_count == 5
    assert seen
    assert pipeline.stage is Stage.DONE


def test_ingestion_failure_reports_failed_and_empty_result():
    pipeline = AnalysisPipeline(clock=lambda: FIXED_TIME)
    events = []
    pipeline.subscribe(events.append)

    def loader():
        raise IngestionError("unreadable ledger")

    result = pipeline.run_from(loader)
    assert pipeline.stage is Stage.FAILED
    assert events[-1].stage is Stage.INGESTING
    assert events[-1].status is StageStatus.FAILED
    assert events[-1].message == "unreadable ledger"
    assert result.transactions == ()
    assert result.timestamp == FIXED_TIME


def test_run_from_success(smurfing_ledger):
    pipeline = AnalysisPipeline()
    result = pipeline.run_from(lambda: smurfing_ledger, SourceType.LIVE_ETH)
    assert result.source_type is SourceType.LIVE_ETH
    assert result.suspicious_count == 5


def test_run_from_survives_out_of_range_timestamp():
    text = (
        "tx_id,from,to,amount,timestamp,token\n"
        "t1,A,B,5,1698400800,USDT\n"
        "t2,A,C,5,100000000000000000000,USDT\n"
    )
    pipeline = AnalysisPipeline()
    result = pipeline.run_from(lambda: parse_ledger_csv(text))
    assert pipeline.stage is Stage.DONE
    assert [t.id for t in result.transactions] == ["t1"]


def test_rerun_produces_fresh_snapshot(smurfing_ledger, civilian_ledger):
    pipeline = AnalysisPipeline()
    first = pipeline.run(smurfing_ledger)
    second = pipeline.run(smurfing_ledger + civilian_ledger)
    assert first.wallets["A"] is not second.wallets["A"]
    assert len(first.wallets) == 5
    assert len(second.wallets) == 8
    assert pipeline.run_count == 2


def test_result_wallet_mapping_is_read_only(smurfing_ledger):
    result = AnalysisPipeline().run(smurfing_ledger)
    with pytest.raises(TypeError):
        result.wallets["X"] = result.wallets["A"]


def test_suspicious_cutoff_is_configurable(smurfing_ledger):
    result = AnalysisPipeline(PipelineConfig(suspicious_cutoff=0.75)).run(smurfing_ledger)
    # only C (0.8) is strictly above 0.75
    assert result.suspicious_count == 1


def test_exchange_labels_are_applied(smurfing_ledger):
    pipeline = AnalysisPipeline(exchanges=ExchangeDirectory({"C": "Exchange hot wallet"}))
    result = pipeline.run(smurfing_ledger)
    assert result.wallets["C"].label == "Exchange hot wallet"
    assert result.wallets["C"].suspicion_score == 0.8
