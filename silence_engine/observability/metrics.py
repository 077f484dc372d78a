"""Analysis metrics collection and reporting.

Provides AnalysisMetrics dataclass for structured observability data,
StageTimer context manager for measuring pipeline stage durations,
and log_analysis_metrics() for emitting metrics as a structured log record.
"""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime

logger = logging.getLogger(__name__)


@dataclass
class AnalysisMetrics:
    """All metrics collected for a single adaptive analysis run."""

    path: str
    total_duration_seconds: float
    noise_tier: str
    threshold_db: float
    was_adjusted: bool
    silence_count: int
    silence_percent: float
    chunks_requested: int
    chunks_measured: int
    percentiles_available: bool
    wall_time_seconds: float
    stage_timings: dict[str, float] = field(default_factory=dict)


class StageTimer:
    """Context manager that records wall-clock duration of a pipeline stage.

    Captures stage_name, start_time, end_time (as UTC datetimes),
    and duration_seconds (as a monotonic float). When a timings dict is
    given, the duration is stored under the stage name on exit; failed
    stages are stored under ``_<stage>_failed``.

    Usage:
        timer = StageTimer("chunks")
        with timer:
            await do_work()
        print(timer.duration_seconds)
    """

    def __init__(
        self, stage_name: str, timings: dict[str, float] | None = None
    ) -> None:
        self.stage_name = stage_name
        self.start_time: datetime | None = None
        self.end_time: datetime | None = None
        self.duration_seconds: float = 0.0
        self._timings = timings
        self._mono_start: float = 0.0

    def __enter__(self) -> StageTimer:
        self.start_time = datetime.now(UTC)
        self._mono_start = time.monotonic()
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        elapsed = time.monotonic() - self._mono_start
        self.end_time = datetime.now(UTC)
        self.duration_seconds = elapsed
        if self._timings is not None:
            if exc_type is not None:
                self._timings[f"_{self.stage_name}_failed"] = elapsed
            else:
                self._timings[self.stage_name] = elapsed


def log_analysis_metrics(metrics: AnalysisMetrics) -> None:
    """Emit analysis metrics as a single structured log record.

    All AnalysisMetrics fields are attached under the ``metrics`` extra
    so the JSON formatter spreads them into the log line.

    Args:
        metrics: Populated AnalysisMetrics dataclass.
    """
    logger.info(
        "Analysis metrics for %s",
        metrics.path,
        extra={"metrics": asdict(metrics), "stage": "complete"},
    )
