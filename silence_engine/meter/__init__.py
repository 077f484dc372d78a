"""Pluggable audio meters.

Public API:
    AudioMeter       — Abstract base class for meter implementations.
    SilenceEvent     — A silence boundary reported by a meter.
    SilenceEventKind — START or END.
    FFmpegAudioMeter — Meter backed by ffmpeg/ffprobe.
    get_audio_meter  — Factory to create meters by provider name.
"""

from silence_engine.meter.ffmpeg import FFmpegAudioMeter
from silence_engine.meter.interface import AudioMeter, SilenceEvent, SilenceEventKind
from silence_engine.meter.registry import get_audio_meter

__all__ = [
    "AudioMeter",
    "SilenceEvent",
    "SilenceEventKind",
    "FFmpegAudioMeter",
    "get_audio_meter",
]
