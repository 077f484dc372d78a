"""Keep-segment extraction from detected silences.

Turns silence intervals into the speech ranges a cutter should retain,
applying padding, a minimum length filter, gap merging and asymmetric
timeback expansion so cuts do not clip the start or end of words.
"""

import logging
import math
from dataclasses import dataclass

from silence_engine.models import Segment, SilenceInterval

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SegmentOptions:
    """Tunables for extract_segments(), all in seconds."""

    padding: float = 0.015
    min_segment_duration: float = 0.1
    merge_gap: float = 0.075
    timeback_padding_start: float = 0.15
    timeback_padding_end: float = 0.2


def _raw_segments(
    silences: list[SilenceInterval], total_duration: float, padding: float
) -> list[Segment]:
    segments: list[Segment] = []
    last_end = 0.0

    # The end of the track acts as a final gap boundary
    boundaries = [
        (s.start, s.end) for s in sorted(silences, key=lambda s: (s.start, s.end))
    ]
    boundaries.append((total_duration, total_duration))

    for gap_end, silence_end in boundaries:
        start = max(0.0, last_end + padding)
        end = min(total_duration, gap_end - padding)
        if end > start:
            segments.append(Segment(start, end))
        last_end = max(last_end, silence_end)

    return segments


def _merge_close(segments: list[Segment], merge_gap: float) -> list[Segment]:
    merged: list[Segment] = []
    for seg in segments:
        if merged and seg.start - merged[-1].end <= merge_gap:
            merged[-1] = Segment(merged[-1].start, seg.end)
        else:
            merged.append(seg)
    return merged


def _expand_and_remerge(
    segments: list[Segment], total_duration: float, pad_start: float, pad_end: float
) -> list[Segment]:
    result: list[Segment] = []
    for seg in segments:
        expanded = Segment(
            max(0.0, seg.start - pad_start), min(total_duration, seg.end + pad_end)
        )
        if result and expanded.start <= result[-1].end:
            result[-1] = Segment(result[-1].start, max(result[-1].end, expanded.end))
        else:
            result.append(expanded)
    return result


def extract_segments(
    silences: list[SilenceInterval],
    total_duration: float,
    options: SegmentOptions | None = None,
) -> list[Segment]:
    """Compute the ordered, non-overlapping segments to keep.

    Steps, in order: raw extraction of the padded gaps between silences,
    dropping segments shorter than ``min_segment_duration``, merging
    segments closer than ``merge_gap``, then timeback expansion with a
    final re-merge of overlaps.

    Args:
        silences: Detected silence intervals, in any order.
        total_duration: Track duration in seconds.
        options: Padding and merge configuration (defaults if None).

    Returns:
        Segments to retain; empty for a non-positive or non-finite duration.
    """
    opts = options or SegmentOptions()
    if not math.isfinite(total_duration) or total_duration <= 0:
        return []

    segments = _raw_segments(silences, total_duration, opts.padding)
    segments = [s for s in segments if s.end - s.start >= opts.min_segment_duration]
    segments = _merge_close(segments, opts.merge_gap)
    segments = _expand_and_remerge(
        segments,
        total_duration,
        opts.timeback_padding_start,
        opts.timeback_padding_end,
    )

    logger.debug(
        "%d segments (padding=%ss, min=%ss, merge_gap=%ss, tb_start=%ss, tb_end=%ss)",
        len(segments),
        opts.padding,
        opts.min_segment_duration,
        opts.merge_gap,
        opts.timeback_padding_start,
        opts.timeback_padding_end,
    )
    return segments


get_non_silent_segments = extract_segments
