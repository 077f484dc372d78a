"""Chunked full-track volume survey.

Measures the track in fixed-length windows and reduces the per-chunk
max/mean volumes to medians, which are robust against loud or silent
outliers (music stings, long pauses).
"""

import asyncio
import logging
import math
from collections.abc import Sequence

import numpy as np

from silence_engine.meter.interface import AudioMeter
from silence_engine.models import AudioStats, ChunkAnalysis

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_DURATION = 30.0
MIN_CHUNK_DURATION = 1.0
# Bounds concurrent ffmpeg decode processes
MAX_CONCURRENT_CHUNKS = 3

DEFAULT_MEDIAN_MAX_DB = -25.0
DEFAULT_MEDIAN_MEAN_DB = -30.0


def median(values: Sequence[float]) -> float:
    """Return the element at index ``n // 2`` of the sorted values.

    For an even count this is the upper of the two middle elements, not
    their average: ``median([-10, -20, -30, -40]) == -20``.

    Raises:
        ValueError: If values is empty.
    """
    if len(values) == 0:
        raise ValueError("median() of an empty sequence")
    ordered = np.sort(np.asarray(values, dtype=float))
    return float(ordered[len(ordered) // 2])


def chunk_windows(
    total_duration: float, chunk_duration: float
) -> list[tuple[float, float]]:
    """Split ``[0, total_duration)`` into (start, duration) windows.

    The last window may be shorter; windows under one second are skipped.
    """
    if not math.isfinite(total_duration) or total_duration <= 0 or chunk_duration <= 0:
        return []

    windows: list[tuple[float, float]] = []
    num_chunks = math.ceil(total_duration / chunk_duration)
    for i in range(num_chunks):
        start = i * chunk_duration
        duration = min(chunk_duration, total_duration - start)
        if duration < MIN_CHUNK_DURATION:
            continue
        windows.append((start, duration))
    return windows


async def analyze_chunks(
    meter: AudioMeter,
    path: str,
    total_duration: float,
    chunk_duration: float = DEFAULT_CHUNK_DURATION,
) -> ChunkAnalysis:
    """Survey the whole track chunk by chunk.

    Chunks are measured in sequential batches of at most
    MAX_CONCURRENT_CHUNKS concurrent meter calls. Failed measurements are
    omitted; when nothing could be measured the default statistics are
    returned.

    Args:
        meter: Audio meter used for the volume measurements.
        path: Path to the media file.
        total_duration: Track duration in seconds.
        chunk_duration: Window length in seconds.

    Returns:
        ChunkAnalysis with the per-chunk values and their medians.
    """
    if not math.isfinite(total_duration) or total_duration <= 0:
        logger.warning(
            "Invalid duration %r, using default volume statistics",
            total_duration,
            extra={"path": path, "stage": "chunks"},
        )
        return ChunkAnalysis(
            max_volumes=[],
            mean_volumes=[],
            median_max=DEFAULT_MEDIAN_MAX_DB,
            median_mean=DEFAULT_MEDIAN_MEAN_DB,
        )

    windows = chunk_windows(total_duration, chunk_duration)
    logger.debug("Analyzing %d chunks of %.1fs", len(windows), chunk_duration)

    max_volumes: list[float] = []
    mean_volumes: list[float] = []

    for batch_start in range(0, len(windows), MAX_CONCURRENT_CHUNKS):
        batch = windows[batch_start : batch_start + MAX_CONCURRENT_CHUNKS]
        results: list[AudioStats | None] = await asyncio.gather(
            *(
                meter.measure_volume(path, start, duration, band_filter=True)
                for start, duration in batch
            )
        )
        for stats in results:
            if stats is None:
                continue
            max_volumes.append(stats.max_volume_db)
            mean_volumes.append(stats.mean_volume_db)

    median_max = median(max_volumes) if max_volumes else DEFAULT_MEDIAN_MAX_DB
    median_mean = median(mean_volumes) if mean_volumes else DEFAULT_MEDIAN_MEAN_DB

    if not max_volumes:
        logger.warning(
            "No chunk measurement succeeded, using default volume statistics",
            extra={"path": path, "stage": "chunks"},
        )
    logger.debug(
        "%d/%d chunks: median_max=%.1fdB, median_mean=%.1fdB",
        len(max_volumes),
        len(windows),
        median_max,
        median_mean,
    )

    return ChunkAnalysis(
        max_volumes=max_volumes,
        mean_volumes=mean_volumes,
        median_max=median_max,
        median_mean=median_mean,
        chunks_requested=len(windows),
    )
