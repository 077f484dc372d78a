"""Command line entry point for adaptive silence detection.

Analyzes one media file and prints the detected silences and the
segments to keep as a JSON document on stdout. Logs go to stderr as
structured JSON.
"""

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict

from silence_engine.observability.logger import setup_logging
from silence_engine.pipeline import DEFAULT_MIN_SILENCE_DURATION, analyze
from silence_engine.segments import SegmentOptions, extract_segments
from silence_engine.utils.errors import SilenceEngineError

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    defaults = SegmentOptions()
    parser = argparse.ArgumentParser(
        prog="silence-engine",
        description="Detect silence in a recording and list the speech segments to keep.",
    )
    parser.add_argument("input", help="Input video or audio file.")
    parser.add_argument(
        "--min-duration", type=float, default=DEFAULT_MIN_SILENCE_DURATION,
        help="Minimum silence length in seconds (default %(default)s).",
    )
    parser.add_argument(
        "--padding", type=float, default=defaults.padding,
        help="Padding trimmed inside each silence boundary (default %(default)s).",
    )
    parser.add_argument(
        "--min-segment", type=float, default=defaults.min_segment_duration,
        help="Drop kept segments shorter than this (default %(default)s).",
    )
    parser.add_argument(
        "--merge-gap", type=float, default=defaults.merge_gap,
        help="Merge kept segments closer than this (default %(default)s).",
    )
    parser.add_argument(
        "--timeback-start", type=float, default=defaults.timeback_padding_start,
        help="Seconds added before each kept segment (default %(default)s).",
    )
    parser.add_argument(
        "--timeback-end", type=float, default=defaults.timeback_padding_end,
        help="Seconds added after each kept segment (default %(default)s).",
    )
    parser.add_argument(
        "-d", "--debug", action="store_true",
        help="Enable debug logging.",
    )
    return parser.parse_args(argv)


async def _run(args: argparse.Namespace) -> dict[str, object]:
    result = await analyze(args.input, min_duration=args.min_duration)
    options = SegmentOptions(
        padding=args.padding,
        min_segment_duration=args.min_segment,
        merge_gap=args.merge_gap,
        timeback_padding_start=args.timeback_start,
        timeback_padding_end=args.timeback_end,
    )
    segments = extract_segments(result.silences, result.total_duration, options)
    return {
        "input": args.input,
        "duration_seconds": result.total_duration,
        "threshold_db": result.threshold_db,
        "analysis_info": result.analysis_info,
        "silences": [asdict(s) for s in result.silences],
        "segments": [asdict(s) for s in segments],
    }


def main(argv: list[str] | None = None) -> int:
    """Run the analysis and print the JSON report."""
    args = parse_args(argv)
    setup_logging("DEBUG" if args.debug else None)

    try:
        report = asyncio.run(_run(args))
    except SilenceEngineError as exc:
        logger.error("Silence analysis failed: %s", exc, extra={"error": str(exc)})
        return 1

    print(json.dumps(report, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
