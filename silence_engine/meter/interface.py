"""Abstract audio meter interface and event models.

An AudioMeter performs raw measurement on a media file: duration probe,
volume and peak/RMS measurement, and silence boundary event emission.
Concrete implementations (e.g., ffmpeg) subclass AudioMeter.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from silence_engine.models import AudioStats, PercentileStats


class SilenceEventKind(str, Enum):
    """Boundary type reported by the silence event stream."""

    START = "start"
    END = "end"


@dataclass(frozen=True)
class SilenceEvent:
    """A single silence boundary at a timestamp in seconds."""

    kind: SilenceEventKind
    timestamp: float


class AudioMeter(ABC):
    """Abstract base class for audio meter implementations.

    Every measurement accepts ``band_filter``; when true the audio is
    restricted to the speech band (200Hz-3500Hz) before measuring.
    """

    @abstractmethod
    async def probe_duration(self, path: str) -> float:
        """Return the duration of the media file in seconds."""

    @abstractmethod
    async def measure_volume(
        self,
        path: str,
        start_offset: float,
        duration: float,
        band_filter: bool = True,
    ) -> AudioStats | None:
        """Measure max and mean volume of one window of audio.

        Returns:
            AudioStats, or None if the measurement failed or was unparseable.
        """

    @abstractmethod
    async def measure_percentiles(
        self,
        path: str,
        sample_duration: float | None,
        band_filter: bool = True,
    ) -> PercentileStats | None:
        """Measure peak and RMS level of the first ``sample_duration`` seconds.

        A ``sample_duration`` of None measures the whole track.

        Returns:
            PercentileStats, or None if the measurement failed.
        """

    @abstractmethod
    async def detect_silence_events(
        self,
        path: str,
        threshold_db: float,
        min_duration: float,
        band_filter: bool = True,
    ) -> list[SilenceEvent]:
        """Return silence start/end events in stream order.

        Raises:
            DetectionError: If the underlying event stream fails.
        """
