"""Noise classification from dynamic range."""

from enum import Enum

# Dynamic range boundaries between tiers, in dB
VERY_NOISY_BELOW_DB = 8.0
NOISY_BELOW_DB = 12.0
MODERATE_BELOW_DB = 15.0


class NoiseTier(str, Enum):
    """Coarse background-noise bucket driving the threshold formula."""

    VERY_NOISY = "very_noisy"
    NOISY = "noisy"
    MODERATE = "moderate"
    CLEAN = "clean"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").upper()


def classify_noise(dynamic_range_db: float | None) -> NoiseTier:
    """Map a peak-minus-RMS dynamic range to a noise tier.

    A missing dynamic range is treated as clean audio.
    """
    if dynamic_range_db is None:
        return NoiseTier.CLEAN
    if dynamic_range_db < VERY_NOISY_BELOW_DB:
        return NoiseTier.VERY_NOISY
    if dynamic_range_db < NOISY_BELOW_DB:
        return NoiseTier.NOISY
    if dynamic_range_db < MODERATE_BELOW_DB:
        return NoiseTier.MODERATE
    return NoiseTier.CLEAN
