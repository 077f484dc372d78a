"""Audio meter selection.

The provider comes from the caller or from AUDIO_METER_PROVIDER, and
falls back to ffmpeg. Names are matched case-insensitively.
"""

import logging
import os

from silence_engine.meter.ffmpeg import FFmpegAudioMeter
from silence_engine.meter.interface import AudioMeter
from silence_engine.utils.errors import MeterError

logger = logging.getLogger(__name__)

METER_PROVIDER_ENV = "AUDIO_METER_PROVIDER"
DEFAULT_METER_PROVIDER = "ffmpeg"

METER_ENGINES: dict[str, type[AudioMeter]] = {
    "ffmpeg": FFmpegAudioMeter,
}


def resolve_provider(provider: str | None = None) -> str:
    """Return the normalized provider name to use."""
    name = provider or os.environ.get(METER_PROVIDER_ENV) or DEFAULT_METER_PROVIDER
    return name.strip().lower()


def get_audio_meter(provider: str | None = None, **kwargs: object) -> AudioMeter:
    """Create the audio meter for a provider.

    Args:
        provider: Provider name (e.g., "ffmpeg"). None reads
            AUDIO_METER_PROVIDER.
        **kwargs: Passed to the meter constructor (binary paths for ffmpeg).

    Raises:
        MeterError: If the provider is unknown or its binaries are missing.
    """
    name = resolve_provider(provider)
    meter_cls = METER_ENGINES.get(name)
    if meter_cls is None:
        available = ", ".join(sorted(METER_ENGINES))
        raise MeterError(
            f"Unknown audio meter provider: '{name}'. Available: {available}",
            provider=name,
        )

    logger.debug("Using %s audio meter", name)
    return meter_cls(**kwargs)
