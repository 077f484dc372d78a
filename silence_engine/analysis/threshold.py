"""Adaptive silence threshold selection.

The noise tier picks a candidate builder; each builder proposes several
(threshold, weight) candidates from the chunk medians and the optional
peak/RMS levels. The final threshold is their weighted mean, clamped to
tier-specific bounds.

- Very noisy (DR < 8dB): the noise floor sits close to speech peaks, so
  the threshold is placed between them. Pauses drop to the floor (below
  threshold) and speech rises above it.
- Noisy (DR 8-12dB): interpolated between floor and speech, closer to
  the floor.
- Moderate/clean (DR >= 12dB): classic peak-offset and RMS-based methods.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

import numpy as np

from silence_engine.analysis.noise import NoiseTier, classify_noise

logger = logging.getLogger(__name__)

THRESHOLD_LOWER_BOUND_DB = -50.0
THRESHOLD_UPPER_BOUNDS_DB: dict[NoiseTier, float] = {
    NoiseTier.VERY_NOISY: -6.0,
    NoiseTier.NOISY: -8.0,
    NoiseTier.MODERATE: -12.0,
    NoiseTier.CLEAN: -12.0,
}

# Above this dynamic range clean audio gets an extra aggressive candidate
HIGH_DYNAMIC_RANGE_DB = 15.0


@dataclass(frozen=True)
class ThresholdInputs:
    """Measurements available to the candidate builders."""

    median_max: float
    median_mean: float
    peak_level_db: float | None = None
    rms_level_db: float | None = None
    dynamic_range_db: float | None = None


@dataclass(frozen=True)
class ThresholdCandidate:
    value_db: float
    weight: float


@dataclass(frozen=True)
class ThresholdDecision:
    """Chosen tier, its candidates and the clamped final threshold."""

    tier: NoiseTier
    candidates: tuple[ThresholdCandidate, ...]
    threshold_db: float
    upper_bound_db: float
    inputs: ThresholdInputs

    def describe(self) -> str:
        """Human-readable summary for logs and debugging."""
        parts = [
            f"tier={self.tier.label}",
            f"median_max={self.inputs.median_max:.1f}dB",
            f"median_mean={self.inputs.median_mean:.1f}dB",
        ]
        if self.inputs.rms_level_db is not None:
            parts.append(f"rms={self.inputs.rms_level_db:.1f}dB")
        if self.inputs.dynamic_range_db is not None:
            parts.append(f"DR={self.inputs.dynamic_range_db:.1f}dB")
        methods = ", ".join(
            f"{c.value_db:.1f}dB(w={c.weight})" for c in self.candidates
        )
        gap = self.inputs.median_max - self.threshold_db
        return (
            f"{' '.join(parts)}; candidates: {methods}; "
            f"threshold={self.threshold_db:.1f}dB "
            f"({gap:.1f}dB below peak, bounds "
            f"[{THRESHOLD_LOWER_BOUND_DB:.0f}, {self.upper_bound_db:.0f}])"
        )


def very_noisy_candidates(inputs: ThresholdInputs) -> list[ThresholdCandidate]:
    dr = inputs.dynamic_range_db or 0.0
    candidates = [
        # Midpoint between noise floor and speech peaks
        ThresholdCandidate(inputs.median_mean + dr * 0.5, 2.0),
        ThresholdCandidate(inputs.median_max - dr * 0.6, 1.0),
    ]
    if inputs.rms_level_db is not None:
        # RMS approximates the noise floor; sit slightly above it
        candidates.append(ThresholdCandidate(inputs.rms_level_db + dr * 0.3, 1.2))
    if inputs.peak_level_db is not None:
        candidates.append(ThresholdCandidate(inputs.peak_level_db - 3, 1.5))
    return candidates


def noisy_candidates(inputs: ThresholdInputs) -> list[ThresholdCandidate]:
    dr = inputs.dynamic_range_db or 0.0
    candidates = [
        ThresholdCandidate(inputs.median_mean + dr * 0.35, 1.5),
        ThresholdCandidate(inputs.median_max - dr * 0.7, 1.0),
    ]
    if inputs.rms_level_db is not None:
        candidates.append(ThresholdCandidate(inputs.rms_level_db - 1, 0.5))
    if inputs.peak_level_db is not None:
        candidates.append(ThresholdCandidate(inputs.peak_level_db - 6, 0.8))
    return candidates


def _peak_offset_candidates(
    inputs: ThresholdInputs, peak_offset: float
) -> list[ThresholdCandidate]:
    candidates = [
        ThresholdCandidate(inputs.median_max - peak_offset, 1.0),
        ThresholdCandidate(inputs.median_mean - 2, 0.5),
    ]
    if inputs.rms_level_db is not None:
        candidates.append(ThresholdCandidate(inputs.rms_level_db - 4, 0.8))
        if (
            inputs.dynamic_range_db is not None
            and inputs.dynamic_range_db > HIGH_DYNAMIC_RANGE_DB
        ):
            candidates.append(ThresholdCandidate(inputs.median_max - 12, 0.5))
    return candidates


def moderate_candidates(inputs: ThresholdInputs) -> list[ThresholdCandidate]:
    return _peak_offset_candidates(inputs, peak_offset=9)


def clean_candidates(inputs: ThresholdInputs) -> list[ThresholdCandidate]:
    return _peak_offset_candidates(inputs, peak_offset=10)


CANDIDATE_BUILDERS: dict[NoiseTier, Callable[[ThresholdInputs], list[ThresholdCandidate]]] = {
    NoiseTier.VERY_NOISY: very_noisy_candidates,
    NoiseTier.NOISY: noisy_candidates,
    NoiseTier.MODERATE: moderate_candidates,
    NoiseTier.CLEAN: clean_candidates,
}


def weighted_mean(candidates: list[ThresholdCandidate]) -> float:
    """Weighted average of candidate values."""
    values = np.array([c.value_db for c in candidates], dtype=float)
    weights = np.array([c.weight for c in candidates], dtype=float)
    return float(np.average(values, weights=weights))


def build_threshold_decision(
    median_max: float,
    median_mean: float,
    peak_level_db: float | None = None,
    rms_level_db: float | None = None,
    dynamic_range_db: float | None = None,
) -> ThresholdDecision:
    """Classify the noise tier and compute the clamped adaptive threshold."""
    inputs = ThresholdInputs(
        median_max=median_max,
        median_mean=median_mean,
        peak_level_db=peak_level_db,
        rms_level_db=rms_level_db,
        dynamic_range_db=dynamic_range_db,
    )
    tier = classify_noise(dynamic_range_db)
    candidates = CANDIDATE_BUILDERS[tier](inputs)
    upper = THRESHOLD_UPPER_BOUNDS_DB[tier]
    threshold = min(upper, max(THRESHOLD_LOWER_BOUND_DB, weighted_mean(candidates)))

    decision = ThresholdDecision(
        tier=tier,
        candidates=tuple(candidates),
        threshold_db=threshold,
        upper_bound_db=upper,
        inputs=inputs,
    )
    logger.info(
        "Adaptive threshold: %s",
        decision.describe(),
        extra={"threshold_db": threshold, "noise_tier": tier.value},
    )
    return decision


def calculate_adaptive_threshold(
    median_max: float,
    median_mean: float,
    peak_level_db: float | None = None,
    rms_level_db: float | None = None,
    dynamic_range_db: float | None = None,
) -> float:
    """Return only the threshold in dB; see build_threshold_decision()."""
    return build_threshold_decision(
        median_max, median_mean, peak_level_db, rms_level_db, dynamic_range_db
    ).threshold_db
