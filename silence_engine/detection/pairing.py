"""Silence event pairing and single-threshold detection."""

import logging
from collections.abc import Iterable

from silence_engine.meter.interface import AudioMeter, SilenceEvent, SilenceEventKind
from silence_engine.models import SilenceInterval

logger = logging.getLogger(__name__)


def pair_silence_events(events: Iterable[SilenceEvent]) -> list[SilenceInterval]:
    """Pair each START with the next END into silence intervals.

    A repeated START replaces the pending one and an END without a
    pending START is ignored. A trailing START that never receives an
    END (silence running to end of file) is dropped rather than closed
    at the end of the track; callers that need the tail must handle it
    themselves.
    """
    silences: list[SilenceInterval] = []
    pending_start: float | None = None

    for event in events:
        if event.kind is SilenceEventKind.START:
            pending_start = event.timestamp
        elif pending_start is not None:
            if event.timestamp > pending_start:
                silences.append(SilenceInterval(pending_start, event.timestamp))
            else:
                logger.debug(
                    "Dropping degenerate silence %.3f-%.3f",
                    pending_start,
                    event.timestamp,
                )
            pending_start = None

    if pending_start is not None:
        logger.debug("Dropping unterminated silence starting at %.3fs", pending_start)

    return silences


async def detect_silence(
    meter: AudioMeter,
    path: str,
    threshold_db: float = -20.0,
    min_duration: float = 0.3,
    band_filter: bool = True,
) -> list[SilenceInterval]:
    """Detect silent intervals at a fixed threshold.

    Raises:
        DetectionError: If the meter's event stream fails.
    """
    events = await meter.detect_silence_events(
        path, threshold_db, min_duration, band_filter=band_filter
    )
    silences = pair_silence_events(events)
    logger.debug(
        "Found %d silent intervals at %.1fdB", len(silences), threshold_db
    )
    return silences
