"""Data models shared across the silence engine.

Every model is created fresh per invocation and discarded after use.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class SilenceInterval:
    """A detected silent time range, in seconds."""

    start: float
    end: float

    @property
    def duration(self) -> float:
        return self.end - self.start


# A contiguous range marked for retention in the final cut.
Segment = SilenceInterval


@dataclass(frozen=True)
class AudioStats:
    """Volume measurement of one chunk of audio."""

    max_volume_db: float
    mean_volume_db: float


@dataclass(frozen=True)
class PercentileStats:
    """Peak and RMS levels sampled from the start of a track."""

    peak_level_db: float
    rms_level_db: float

    @property
    def dynamic_range_db(self) -> float:
        return self.peak_level_db - self.rms_level_db


@dataclass
class ChunkAnalysis:
    """Robust volume statistics from a chunked survey of the whole track."""

    max_volumes: list[float]
    mean_volumes: list[float]
    median_max: float
    median_mean: float
    chunks_requested: int = 0

    @property
    def used_defaults(self) -> bool:
        """True when no chunk measurement succeeded."""
        return not self.max_volumes


@dataclass
class AdaptiveResult:
    """Result of adaptive silence detection."""

    silences: list[SilenceInterval] = field(default_factory=list)
    threshold_db: float = 0.0
    analysis_info: str = ""
    total_duration: float = 0.0
