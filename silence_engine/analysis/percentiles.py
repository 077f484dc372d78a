"""Peak/RMS sampling from the start of a track."""

import logging
import math

from silence_engine.meter.interface import AudioMeter
from silence_engine.models import PercentileStats

logger = logging.getLogger(__name__)

MAX_SAMPLE_DURATION = 60.0


def sample_duration_for(total_duration: float) -> float | None:
    """Seconds to sample; None means the whole track (duration unknown)."""
    if not math.isfinite(total_duration) or total_duration <= 0:
        return None
    return min(MAX_SAMPLE_DURATION, total_duration)


async def analyze_percentiles(
    meter: AudioMeter, path: str, total_duration: float
) -> PercentileStats | None:
    """Measure speech-band peak and RMS level over the first minute.

    Returns:
        PercentileStats, or None if the meter could not measure. No
        default is substituted; callers omit the dependent candidates.
    """
    stats = await meter.measure_percentiles(
        path, sample_duration_for(total_duration), band_filter=True
    )
    if stats is None:
        logger.info(
            "Peak/RMS levels unavailable, continuing without them",
            extra={"path": path, "stage": "percentiles"},
        )
    return stats
