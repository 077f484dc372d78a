"""Adaptive silence detection orchestrator.

Pipeline stages: probe duration -> chunked volume survey -> peak/RMS
sampling -> noise tier and adaptive threshold -> dual-pass detection.
Each call is independent; nothing is written and no state is kept.
"""

from __future__ import annotations

import logging
import time

from silence_engine.analysis.chunks import DEFAULT_CHUNK_DURATION, analyze_chunks
from silence_engine.analysis.percentiles import analyze_percentiles
from silence_engine.analysis.threshold import ThresholdDecision, build_threshold_decision
from silence_engine.detection.dual_pass import DualPassResult, detect_dual_pass, silence_percent
from silence_engine.meter.interface import AudioMeter
from silence_engine.meter.registry import get_audio_meter
from silence_engine.models import AdaptiveResult, ChunkAnalysis, PercentileStats
from silence_engine.observability.metrics import (
    AnalysisMetrics,
    StageTimer,
    log_analysis_metrics,
)

logger = logging.getLogger(__name__)

DEFAULT_MIN_SILENCE_DURATION = 0.3


def build_analysis_info(
    chunks: ChunkAnalysis,
    percentiles: PercentileStats | None,
    decision: ThresholdDecision,
    detection: DualPassResult,
    total_duration: float,
) -> str:
    """Summarize the analysis decisions in one diagnostic line."""
    chunk_note = f"chunks={len(chunks.max_volumes)}/{chunks.chunks_requested}"
    if chunks.used_defaults:
        chunk_note += " (defaults)"
    dr_note = (
        f"DR={percentiles.dynamic_range_db:.1f}dB"
        if percentiles is not None
        else "DR=n/a"
    )
    pct = silence_percent(detection.silences, total_duration)
    return (
        f"Adaptive [{decision.tier.label}]: "
        f"medianMax={chunks.median_max:.1f}dB, "
        f"medianMean={chunks.median_mean:.1f}dB, "
        f"{chunk_note}, {dr_note}, "
        f"threshold={detection.threshold_db:.1f}dB"
        f"{' (adjusted)' if detection.was_adjusted else ''}, "
        f"{len(detection.silences)} silences ({pct:.1f}%)"
    )


async def analyze(
    path: str,
    min_duration: float = DEFAULT_MIN_SILENCE_DURATION,
    meter: AudioMeter | None = None,
) -> AdaptiveResult:
    """Detect silences with a threshold adapted to the recording's noise.

    Args:
        path: Path to the video or audio file.
        min_duration: Minimum silence length in seconds.
        meter: Audio meter to measure with. Defaults to the provider named
            by AUDIO_METER_PROVIDER (``ffmpeg``).

    Returns:
        AdaptiveResult with the chosen silences, threshold and a
        diagnostic summary.

    Raises:
        ProbeError: If the duration probe fails.
        DetectionError: If a silence detection pass fails.
        MeterError: If the default meter cannot be created.
    """
    if meter is None:
        meter = get_audio_meter()

    wall_start = time.monotonic()
    stage_timings: dict[str, float] = {}

    with StageTimer("probe", stage_timings):
        total_duration = await meter.probe_duration(path)
    logger.info(
        "Starting adaptive silence detection for %.1fs input",
        total_duration,
        extra={"path": path, "duration_seconds": total_duration},
    )

    with StageTimer("chunks", stage_timings):
        chunks = await analyze_chunks(
            meter, path, total_duration, min(DEFAULT_CHUNK_DURATION, total_duration)
        )

    with StageTimer("percentiles", stage_timings):
        percentiles = await analyze_percentiles(meter, path, total_duration)

    decision = build_threshold_decision(
        chunks.median_max,
        chunks.median_mean,
        percentiles.peak_level_db if percentiles else None,
        percentiles.rms_level_db if percentiles else None,
        percentiles.dynamic_range_db if percentiles else None,
    )

    with StageTimer("dual_pass", stage_timings):
        detection = await detect_dual_pass(
            meter, path, decision.threshold_db, min_duration, total_duration
        )

    analysis_info = build_analysis_info(
        chunks, percentiles, decision, detection, total_duration
    )
    final_percent = silence_percent(detection.silences, total_duration)
    logger.info(
        analysis_info,
        extra={
            "path": path,
            "threshold_db": detection.threshold_db,
            "noise_tier": decision.tier.value,
            "silence_percent": final_percent,
        },
    )

    log_analysis_metrics(
        AnalysisMetrics(
            path=path,
            total_duration_seconds=total_duration,
            noise_tier=decision.tier.value,
            threshold_db=detection.threshold_db,
            was_adjusted=detection.was_adjusted,
            silence_count=len(detection.silences),
            silence_percent=final_percent,
            chunks_requested=chunks.chunks_requested,
            chunks_measured=len(chunks.max_volumes),
            percentiles_available=percentiles is not None,
            wall_time_seconds=time.monotonic() - wall_start,
            stage_timings=stage_timings,
        )
    )

    return AdaptiveResult(
        silences=detection.silences,
        threshold_db=detection.threshold_db,
        analysis_info=analysis_info,
        total_duration=total_duration,
    )


detect_silence_adaptive = analyze
