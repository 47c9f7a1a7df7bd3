"""
Pipeline orchestrator: ingest -> wallet graph -> typology -> risk -> chains.

One run moves through
    Idle -> Ingesting -> BuildingTopology -> ClassifyingPatterns
         -> ScoringRisk -> ExtractingChains -> Done
or ends in Failed when ingestion raises. Every stage emits PROCESSING then
COMPLETED progress events to subscribers; subscribers are display-only and a
failing subscriber is logged and skipped. Each run starts from a fresh wallet
mapping and returns a new immutable AnalysisResult.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Iterable

from chaintrace.analysis_engine.chains import extract_chains
from chaintrace.analysis_engine.enrichment import ExchangeDirectory
from chaintrace.analysis_engine.graph import build_wallet_graph, total_volume
from chaintrace.analysis_engine.models import AnalysisResult, SourceType, Transaction
from chaintrace.analysis_engine.scorer import ScoringConfig, count_suspicious, score_wallets
from chaintrace.analysis_engine.typology import TypologyConfig, classify_wallets
from chaintrace.chaintrace_logging import bind_run, get_logger
from chaintrace.core.exceptions import IngestionError

logger = get_logger(__name__)

SUSPICIOUS_SCORE_CUTOFF = 0.5
ROLLING_WINDOW_CAP = 300


class Stage(str, Enum):
    IDLE = "Idle"
    INGESTING = "Ingesting"
    BUILDING_TOPOLOGY = "BuildingTopology"
    CLASSIFYING_PATTERNS = "ClassifyingPatterns"
    SCORING_RISK = "ScoringRisk"
    EXTRACTING_CHAINS = "ExtractingChains"
    DONE = "Done"
    FAILED = "Failed"


class StageStatus(str, Enum):
    IDLE = "IDLE"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


_WORK_STAGES = (
    Stage.INGESTING,
    Stage.BUILDING_TOPOLOGY,
    Stage.CLASSIFYING_PATTERNS,
    Stage.SCORING_RISK,
    Stage.EXTRACTING_CHAINS,
)


@dataclass(frozen=True)
class ProgressEvent:
    """Stage notification for observers (UI, CLI, logs)."""

    stage: Stage
    status: StageStatus
    message: str | None = None
    progress: float | None = None
    """Fraction of work stages finished when the event was emitted (0..1)."""


ProgressCallback = Callable[[ProgressEvent], None]


@dataclass(frozen=True)
class PipelineConfig:
    """
    Named, overridable constants of the analysis.

    typology: role classification thresholds.
    scoring: role weights and score modifiers.
    suspicious_cutoff: wallets scoring strictly above this count as suspicious.
    window_cap: live-mode rolling window size.
    """

    typology: TypologyConfig = field(default_factory=TypologyConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    suspicious_cutoff: float = SUSPICIOUS_SCORE_CUTOFF
    window_cap: int = ROLLING_WINDOW_CAP


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def empty_result(source_type: SourceType, timestamp: datetime | None = None) -> AnalysisResult:
    """Valid result over zero transactions."""
    return AnalysisResult(
        wallets={},
        transactions=(),
        total_volume=0.0,
        suspicious_count=0,
        laundering_chains=(),
        timestamp=timestamp or _utcnow(),
        source_type=source_type,
    )


class AnalysisPipeline:
    """
    Runs the full analysis over a finite transaction list.

    exchanges: optional known-exchange directory used to label wallets.
    clock: returns the result timestamp; injectable for tests.
    """

    def __init__(
        self,
        config: PipelineConfig | None = None,
        *,
        exchanges: ExchangeDirectory | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config or PipelineConfig()
        self._exchanges = exchanges
        self._clock = clock or _utcnow
        self._subscribers: list[ProgressCallback] = []
        self._stage = Stage.IDLE
        self._run_id = 0

    @property
    def stage(self) -> Stage:
        return self._stage

    @property
    def run_count(self) -> int:
        return self._run_id

    def subscribe(self, callback: ProgressCallback) -> Callable[[], None]:
        """Register a progress observer; returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def _emit(self, stage: Stage, status: StageStatus, message: str | None = None) -> None:
        if stage in _WORK_STAGES:
            done = _WORK_STAGES.index(stage) + (1 if status is StageStatus.COMPLETED else 0)
        else:
            done = len(_WORK_STAGES)
        event = ProgressEvent(stage, status, message, round(done / len(_WORK_STAGES), 2))
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception as e:
                logger.warning("progress_subscriber_failed", stage=stage.value, error=str(e))

    def _enter(self, stage: Stage, message: str | None = None) -> None:
        self._stage = stage
        self._emit(stage, StageStatus.PROCESSING, message)

    def _complete(self, stage: Stage, message: str | None = None) -> None:
        self._emit(stage, StageStatus.COMPLETED, message)

    # --- ingestion stage ---

    def start_ingest(self) -> None:
        self._enter(Stage.INGESTING, "Ingesting transactions")

    def finish_ingest(self, tx_count: int, message: str | None = None) -> None:
        self._complete(Stage.INGESTING, message or f"Ingested {tx_count} transactions")

    def fail_ingest(self, error: BaseException | str) -> None:
        """Mark the run Failed at ingestion; callers keep their prior state."""
        self._stage = Stage.FAILED
        logger.warning("pipeline_ingest_failed", run_id=self._run_id, error=str(error))
        self._emit(Stage.INGESTING, StageStatus.FAILED, str(error))

    def cancel_ingest(self, message: str = "Ingestion cancelled") -> None:
        """Abandon an in-flight ingestion; the pipeline returns to Idle."""
        self._stage = Stage.IDLE
        self._emit(Stage.INGESTING, StageStatus.IDLE, message)

    # --- runs ---

    def run(
        self,
        transactions: Iterable[Transaction],
        source_type: SourceType = SourceType.CSV,
    ) -> AnalysisResult:
        """Analyse an already-normalized transaction list."""
        self.start_ingest()
        txs = tuple(transactions)
        self.finish_ingest(len(txs))
        return self.analyze(txs, source_type)

    def run_from(
        self,
        loader: Callable[[], Iterable[Transaction]],
        source_type: SourceType = SourceType.CSV,
    ) -> AnalysisResult:
        """
        Ingest with loader, then analyse.

        An IngestionError from loader is reported as a Failed ingesting stage
        and yields an empty result instead of raising.
        """
        self.start_ingest()
        try:
            txs = tuple(loader())
        except IngestionError as e:
            self.fail_ingest(e)
            return empty_result(source_type, self._clock())
        self.finish_ingest(len(txs))
        return self.analyze(txs, source_type)

    def analyze(
        self,
        transactions: Iterable[Transaction],
        source_type: SourceType = SourceType.CSV,
    ) -> AnalysisResult:
        """Stages after ingestion: graph, typology, risk, chains. Synchronous and total."""
        self._run_id += 1
        log = bind_run(self._run_id, source_type.value)
        txs = tuple(transactions)
        cfg = self.config

        self._enter(Stage.BUILDING_TOPOLOGY)
        wallets = build_wallet_graph(txs)
        labelled = self._exchanges.annotate(wallets) if self._exchanges is not None else 0
        self._complete(Stage.BUILDING_TOPOLOGY, f"{len(wallets)} wallets")

        self._enter(Stage.CLASSIFYING_PATTERNS)
        role_counts = classify_wallets(wallets, cfg.typology)
        self._complete(
            Stage.CLASSIFYING_PATTERNS,
            ", ".join(f"{role.value}={n}" for role, n in role_counts.items()),
        )

        self._enter(Stage.SCORING_RISK)
        score_wallets(wallets, cfg.scoring)
        suspicious = count_suspicious(wallets.values(), cfg.suspicious_cutoff)
        self._complete(Stage.SCORING_RISK, f"{suspicious} suspicious wallets")

        self._enter(Stage.EXTRACTING_CHAINS)
        chains = extract_chains(wallets, txs)
        self._complete(Stage.EXTRACTING_CHAINS, f"{len(chains)} laundering chains")

        result = AnalysisResult(
            wallets=wallets,
            transactions=txs,
            total_volume=total_volume(txs),
            suspicious_count=suspicious,
            laundering_chains=tuple(chains),
            timestamp=self._clock(),
            source_type=source_type,
        )
        self._stage = Stage.DONE
        self._emit(Stage.DONE, StageStatus.COMPLETED, "Analysis complete")
        log.info(
            "pipeline_run_done",
            tx_count=len(txs),
            wallet_count=len(wallets),
            suspicious_count=suspicious,
            chain_count=len(chains),
            labelled_wallets=labelled,
        )
        return result
