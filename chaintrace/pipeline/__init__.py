# Pipeline: staged batch analysis and the live rolling-window session.

from chaintrace.pipeline.live import LiveSession, RollingWindow, WindowUpdate
from chaintrace.pipeline.orchestrator import (
    AnalysisPipeline,
    PipelineConfig,
    ProgressEvent,
    Stage,
    StageStatus,
    empty_result,
)

__all__ = [
    "AnalysisPipeline",
    "LiveSession",
    "PipelineConfig",
    "ProgressEvent",
    "RollingWindow",
    "Stage",
    "StageStatus",
    "WindowUpdate",
    "empty_result",
]
