"""ffmpeg-backed audio meter.

Runs ffprobe for the duration and ``ffmpeg -f null -`` passes with the
volumedetect, astats and silencedetect filters, parsing their stderr
reports. All processes are launched through asyncio so that several
measurements can run concurrently.
"""

import asyncio
import logging
import math
import os
import re
import shutil

from silence_engine.meter.interface import AudioMeter, SilenceEvent, SilenceEventKind
from silence_engine.models import AudioStats, PercentileStats
from silence_engine.utils.errors import (
    DetectionError,
    MeasurementError,
    MeterError,
    ProbeError,
)

logger = logging.getLogger(__name__)

SPEECH_BAND_LOW_HZ = 200
SPEECH_BAND_HIGH_HZ = 3500
SPEECH_BAND_FILTER = f"highpass=f={SPEECH_BAND_LOW_HZ},lowpass=f={SPEECH_BAND_HIGH_HZ}"

# volumedetect reports no mean for some inputs; estimate it below the max
MEAN_VOLUME_FALLBACK_OFFSET_DB = 15.0

_MEAN_VOLUME_RE = re.compile(r"mean_volume:\s*(-?[\d.]+)\s*dB", re.IGNORECASE)
_MAX_VOLUME_RE = re.compile(r"max_volume:\s*(-?[\d.]+)\s*dB", re.IGNORECASE)
_PEAK_LEVEL_RE = re.compile(r"Peak level dB:\s*(-?[\d.]+)", re.IGNORECASE)
_RMS_LEVEL_RE = re.compile(r"RMS level dB:\s*(-?[\d.]+)", re.IGNORECASE)
# silencedetect prints timestamps with %g, so tiny values use an exponent
_SILENCE_START_RE = re.compile(r"silence_start:\s*(-?[\d.]+(?:e[-+]?\d+)?)")
_SILENCE_END_RE = re.compile(r"silence_end:\s*(-?[\d.]+(?:e[-+]?\d+)?)")


def build_filter_chain(measure_filter: str, band_filter: bool = True) -> str:
    """Prefix a measuring filter with the speech-band filter when requested."""
    if band_filter:
        return f"{SPEECH_BAND_FILTER},{measure_filter}"
    return measure_filter


def parse_volumedetect(output: str) -> AudioStats:
    """Parse volumedetect stderr into AudioStats.

    Raises:
        MeasurementError: If no max_volume line is present.
    """
    max_match = _MAX_VOLUME_RE.search(output)
    if not max_match:
        raise MeasurementError("volumedetect reported no max_volume")

    max_volume = float(max_match.group(1))
    mean_match = _MEAN_VOLUME_RE.search(output)
    if mean_match:
        mean_volume = float(mean_match.group(1))
    else:
        mean_volume = max_volume - MEAN_VOLUME_FALLBACK_OFFSET_DB

    return AudioStats(max_volume_db=max_volume, mean_volume_db=mean_volume)


def parse_astats(output: str) -> PercentileStats:
    """Parse astats stderr into PercentileStats.

    Prefers the ``Overall`` section when present so that multi-channel
    input is summarised across channels; otherwise uses the first
    per-channel values.

    Raises:
        MeasurementError: If peak or RMS level cannot be found.
    """
    overall_at = output.find("Overall")
    section = output[overall_at:] if overall_at >= 0 else output

    peak_match = _PEAK_LEVEL_RE.search(section) or _PEAK_LEVEL_RE.search(output)
    rms_match = _RMS_LEVEL_RE.search(section) or _RMS_LEVEL_RE.search(output)
    if not peak_match or not rms_match:
        raise MeasurementError("could not parse astats output")

    return PercentileStats(
        peak_level_db=float(peak_match.group(1)),
        rms_level_db=float(rms_match.group(1)),
    )


def parse_silence_events(output: str) -> list[SilenceEvent]:
    """Extract silence_start/silence_end events from silencedetect stderr.

    Events are returned in the order ffmpeg reported them. Slightly
    negative start stamps produced by filter delay are clamped to zero.
    """
    events: list[SilenceEvent] = []
    for line in output.splitlines():
        start_match = _SILENCE_START_RE.search(line)
        if start_match:
            events.append(
                SilenceEvent(
                    SilenceEventKind.START, max(0.0, float(start_match.group(1)))
                )
            )
        end_match = _SILENCE_END_RE.search(line)
        if end_match:
            events.append(
                SilenceEvent(
                    SilenceEventKind.END, max(0.0, float(end_match.group(1)))
                )
            )
    return events


async def _run(cmd: list[str]) -> tuple[int, str, str]:
    """Run a process to completion and return (returncode, stdout, stderr)."""
    proc = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await proc.communicate()
    return (
        proc.returncode if proc.returncode is not None else -1,
        stdout.decode(errors="replace"),
        stderr.decode(errors="replace"),
    )


class FFmpegAudioMeter(AudioMeter):
    """Audio meter backed by the ffmpeg and ffprobe binaries.

    Args:
        ffmpeg_path: Path to ffmpeg. Defaults to FFMPEG_PATH, then PATH.
        ffprobe_path: Path to ffprobe. Defaults to FFPROBE_PATH, then PATH.
    """

    def __init__(
        self,
        ffmpeg_path: str | None = None,
        ffprobe_path: str | None = None,
    ) -> None:
        self.ffmpeg_path = (
            ffmpeg_path or os.environ.get("FFMPEG_PATH") or shutil.which("ffmpeg")
        )
        self.ffprobe_path = (
            ffprobe_path or os.environ.get("FFPROBE_PATH") or shutil.which("ffprobe")
        )
        if not self.ffmpeg_path:
            raise MeterError("ffmpeg binary not found on PATH", provider="ffmpeg")
        if not self.ffprobe_path:
            raise MeterError("ffprobe binary not found on PATH", provider="ffmpeg")

    def _null_output_cmd(
        self, path: str, audio_filter: str, input_options: list[str] | None = None
    ) -> list[str]:
        return [
            self.ffmpeg_path,
            "-hide_banner",
            "-nostats",
            *(input_options or []),
            "-i",
            path,
            "-vn",
            "-af",
            audio_filter,
            "-f",
            "null",
            "-",
        ]

    async def probe_duration(self, path: str) -> float:
        """Return the container duration reported by ffprobe.

        Returns NaN when ffprobe reports no duration (e.g. ``N/A``); the
        pipeline treats that as an invalid duration.

        Raises:
            ProbeError: If ffprobe fails.
        """
        cmd = [
            self.ffprobe_path,
            "-v",
            "error",
            "-show_entries",
            "format=duration",
            "-of",
            "default=noprint_wrappers=1:nokey=1",
            path,
        ]
        try:
            returncode, stdout, stderr = await _run(cmd)
        except OSError as exc:
            raise ProbeError(
                f"could not start ffprobe: {exc}", path=path, detail=str(exc)
            ) from exc

        if returncode != 0:
            raise ProbeError(
                f"ffprobe failed: {stderr.strip() or 'unknown error'}",
                path=path,
                detail=stderr.strip(),
            )

        value = stdout.strip()
        try:
            return float(value)
        except ValueError:
            logger.warning("ffprobe reported no usable duration: %r", value, extra={"path": path})
            return math.nan

    async def measure_volume(
        self,
        path: str,
        start_offset: float,
        duration: float,
        band_filter: bool = True,
    ) -> AudioStats | None:
        cmd = self._null_output_cmd(
            path,
            build_filter_chain("volumedetect", band_filter),
            ["-ss", str(start_offset), "-t", str(duration)],
        )
        try:
            returncode, _, stderr = await _run(cmd)
        except OSError as exc:
            logger.debug("could not start ffmpeg: %s", exc, extra={"path": path})
            return None

        if returncode != 0:
            logger.debug(
                "volumedetect failed at %.1fs (exit %d)", start_offset, returncode,
                extra={"path": path},
            )
            return None
        try:
            return parse_volumedetect(stderr)
        except MeasurementError as exc:
            logger.debug("volumedetect at %.1fs: %s", start_offset, exc, extra={"path": path})
            return None

    async def measure_percentiles(
        self,
        path: str,
        sample_duration: float | None,
        band_filter: bool = True,
    ) -> PercentileStats | None:
        input_options = ["-t", str(sample_duration)] if sample_duration else []
        measure = (
            "astats=measure_perchannel=Peak_level+RMS_level"
            ":measure_overall=Peak_level+RMS_level"
        )
        cmd = self._null_output_cmd(
            path, build_filter_chain(measure, band_filter), input_options
        )
        try:
            returncode, _, stderr = await _run(cmd)
        except OSError as exc:
            logger.debug("could not start ffmpeg: %s", exc, extra={"path": path})
            return None

        if returncode != 0:
            logger.debug("astats failed (exit %d)", returncode, extra={"path": path})
            return None
        try:
            stats = parse_astats(stderr)
        except MeasurementError as exc:
            logger.debug("astats: %s", exc, extra={"path": path})
            return None

        logger.debug(
            "Percentiles: peak=%.1fdB, rms=%.1fdB, DR=%.1fdB",
            stats.peak_level_db,
            stats.rms_level_db,
            stats.dynamic_range_db,
        )
        return stats

    async def detect_silence_events(
        self,
        path: str,
        threshold_db: float,
        min_duration: float,
        band_filter: bool = True,
    ) -> list[SilenceEvent]:
        measure = f"silencedetect=noise={threshold_db}dB:d={min_duration}"
        cmd = self._null_output_cmd(path, build_filter_chain(measure, band_filter))

        logger.debug(
            "Silence detection: threshold=%.2fdB, min_duration=%ss, speech_band=%s",
            threshold_db,
            min_duration,
            band_filter,
        )
        try:
            returncode, _, stderr = await _run(cmd)
        except OSError as exc:
            raise DetectionError(
                f"could not start ffmpeg: {exc}", path=path, threshold_db=threshold_db
            ) from exc

        if returncode != 0:
            tail = stderr.strip()[-200:]
            raise DetectionError(
                f"ffmpeg silencedetect failed (exit {returncode}): {tail}",
                path=path,
                threshold_db=threshold_db,
            )
        return parse_silence_events(stderr)
