"""Dual-pass silence detection with verification.

Runs detection at the adaptive threshold and at a 3dB more sensitive
one, then keeps the sensitive pass only when it finds markedly more
silence without the primary pass already removing a large share.
"""

import logging
import math
from dataclasses import dataclass, field

from silence_engine.detection.pairing import detect_silence
from silence_engine.meter.interface import AudioMeter
from silence_engine.models import SilenceInterval

logger = logging.getLogger(__name__)

SENSITIVE_OFFSET_DB = 3.0
# Sensitive pass is only considered while primary stays below this share
ADJUST_BELOW_PERCENT = 40.0
# Sensitive pass must find this much more silence to win
ADJUST_MIN_RATIO = 1.15
HIGH_SILENCE_WARNING_PERCENT = 85.0


@dataclass
class DualPassResult:
    """Outcome of dual-pass detection."""

    silences: list[SilenceInterval] = field(default_factory=list)
    threshold_db: float = 0.0
    was_adjusted: bool = False
    primary_percent: float = 0.0
    sensitive_percent: float = 0.0


def silence_percent(silences: list[SilenceInterval], total_duration: float) -> float:
    """Share of the track covered by silences, in percent.

    Returns 0.0 when the duration is not a positive finite number.
    """
    if not math.isfinite(total_duration) or total_duration <= 0:
        return 0.0
    total = sum(s.end - s.start for s in silences)
    return total / total_duration * 100


def select_pass(
    primary: list[SilenceInterval],
    sensitive: list[SilenceInterval],
    primary_threshold: float,
    total_duration: float,
) -> DualPassResult:
    """Choose between the primary and sensitive detection passes."""
    sensitive_threshold = primary_threshold - SENSITIVE_OFFSET_DB
    primary_pct = silence_percent(primary, total_duration)
    sensitive_pct = silence_percent(sensitive, total_duration)

    if primary_pct < ADJUST_BELOW_PERCENT and sensitive_pct > primary_pct * ADJUST_MIN_RATIO:
        chosen, threshold, adjusted = sensitive, sensitive_threshold, True
    elif not primary and sensitive:
        chosen, threshold, adjusted = sensitive, sensitive_threshold, True
    else:
        chosen, threshold, adjusted = primary, primary_threshold, False

    if primary_pct > HIGH_SILENCE_WARNING_PERCENT:
        logger.warning(
            "Very high silence (%.1f%%), audio may be very quiet",
            primary_pct,
            extra={"silence_percent": primary_pct, "stage": "dual_pass"},
        )

    return DualPassResult(
        silences=list(chosen),
        threshold_db=threshold,
        was_adjusted=adjusted,
        primary_percent=primary_pct,
        sensitive_percent=sensitive_pct,
    )


async def detect_dual_pass(
    meter: AudioMeter,
    path: str,
    primary_threshold: float,
    min_duration: float,
    total_duration: float,
) -> DualPassResult:
    """Run both detection passes sequentially and select one.

    Raises:
        DetectionError: If either pass fails.
    """
    primary = await detect_silence(meter, path, primary_threshold, min_duration)
    logger.debug(
        "Primary pass: %d silences, %.1f%%",
        len(primary),
        silence_percent(primary, total_duration),
    )

    sensitive = await detect_silence(
        meter, path, primary_threshold - SENSITIVE_OFFSET_DB, min_duration
    )
    logger.debug(
        "Sensitive pass: %d silences, %.1f%%",
        len(sensitive),
        silence_percent(sensitive, total_duration),
    )

    result = select_pass(primary, sensitive, primary_threshold, total_duration)
    logger.info(
        "Dual-pass final: %d silences (%.1f%%), threshold=%.1fdB%s",
        len(result.silences),
        silence_percent(result.silences, total_duration),
        result.threshold_db,
        " (adjusted)" if result.was_adjusted else "",
        extra={"threshold_db": result.threshold_db, "stage": "dual_pass"},
    )
    return result
