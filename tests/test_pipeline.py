"""Tests for silence_engine.pipeline module."""

from __future__ import annotations

import logging
import math
import os
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from silence_engine.meter.ffmpeg import FFmpegAudioMeter
from silence_engine.meter.interface import AudioMeter, SilenceEvent, SilenceEventKind
from silence_engine.meter.registry import METER_ENGINES
from silence_engine.models import AdaptiveResult, AudioStats, PercentileStats, SilenceInterval
from silence_engine.pipeline import analyze, detect_silence_adaptive
from silence_engine.utils.errors import DetectionError, MeterError, ProbeError

START = SilenceEventKind.START
END = SilenceEventKind.END


def _make_meter(
    duration: float = 120.0,
    volumes: list[AudioStats | None] | None = None,
    percentiles: PercentileStats | None = None,
    passes: list[list[SilenceEvent]] | None = None,
) -> AsyncMock:
    """Create a mocked AudioMeter with scripted measurements."""
    meter = AsyncMock(spec=AudioMeter)
    meter.probe_duration.return_value = duration
    if volumes is None:
        volumes = [AudioStats(-20.0, -35.0)] * 4
    meter.measure_volume.side_effect = volumes
    meter.measure_percentiles.return_value = percentiles
    if passes is None:
        passes = [
            [SilenceEvent(START, 10.0), SilenceEvent(END, 22.0)],
            [SilenceEvent(START, 10.0), SilenceEvent(END, 22.0)],
        ]
    meter.detect_silence_events.side_effect = passes
    return meter


class TestAnalyzeHappyPath:
    """Tests for the full pipeline with a mocked meter."""

    @pytest.mark.asyncio
    async def test_returns_adaptive_result(self) -> None:
        meter = _make_meter(percentiles=PercentileStats(-18.0, -34.0))

        result = await analyze("talk.mp4", min_duration=0.4, meter=meter)

        assert isinstance(result, AdaptiveResult)
        assert result.silences == [SilenceInterval(10.0, 22.0)]
        assert result.total_duration == 120.0
        # Clean tier, DR=16: weighted mean of -30, -37, -38, -32
        assert result.threshold_db == pytest.approx(-94.9 / 2.8)

    @pytest.mark.asyncio
    async def test_detection_uses_adaptive_threshold_and_min_duration(self) -> None:
        meter = _make_meter(percentiles=PercentileStats(-18.0, -34.0))

        await analyze("talk.mp4", min_duration=0.4, meter=meter)

        first, second = meter.detect_silence_events.await_args_list
        assert first.args[0] == "talk.mp4"
        assert first.args[1] == pytest.approx(-94.9 / 2.8)
        assert first.args[2] == 0.4
        assert second.args[1] == pytest.approx(-94.9 / 2.8 - 3)

    @pytest.mark.asyncio
    async def test_chunk_duration_capped_at_thirty_seconds(self) -> None:
        meter = _make_meter(duration=120.0)

        await analyze("talk.mp4", meter=meter)

        starts = [c.args[1] for c in meter.measure_volume.await_args_list]
        assert starts == [0.0, 30.0, 60.0, 90.0]

    @pytest.mark.asyncio
    async def test_short_input_is_one_chunk(self) -> None:
        meter = _make_meter(duration=12.0, volumes=[AudioStats(-15.0, -30.0)])

        await analyze("short.mp4", meter=meter)

        meter.measure_volume.assert_awaited_once_with(
            "short.mp4", 0.0, 12.0, band_filter=True
        )
        meter.measure_percentiles.assert_awaited_once_with(
            "short.mp4", 12.0, band_filter=True
        )

    @pytest.mark.asyncio
    async def test_analysis_info_summarizes_decisions(self) -> None:
        meter = _make_meter(
            percentiles=PercentileStats(-10.0, -16.0),
            passes=[
                [SilenceEvent(START, 10.0), SilenceEvent(END, 20.0)],
                [SilenceEvent(START, 10.0), SilenceEvent(END, 40.0)],
            ],
        )

        result = await analyze("noisy.mp4", meter=meter)

        info = result.analysis_info
        assert info.startswith("Adaptive [VERY NOISY]:")
        assert "chunks=4/4" in info
        assert "DR=6.0dB" in info
        assert f"threshold={result.threshold_db:.1f}dB (adjusted)" in info
        assert "1 silences (25.0%)" in info

    @pytest.mark.asyncio
    async def test_emits_metrics_record(self, caplog: pytest.LogCaptureFixture) -> None:
        meter = _make_meter()

        with caplog.at_level(logging.INFO):
            await analyze("talk.mp4", meter=meter)

        records = [r for r in caplog.records if getattr(r, "metrics", None)]
        assert len(records) == 1
        metrics = records[0].metrics
        assert metrics["noise_tier"] == "clean"
        assert metrics["chunks_measured"] == 4
        assert metrics["percentiles_available"] is False
        assert set(metrics["stage_timings"]) == {
            "probe", "chunks", "percentiles", "dual_pass"
        }

    def test_alias(self) -> None:
        assert detect_silence_adaptive is analyze


class TestAnalyzeDegradation:
    """Measurement failures degrade gracefully and show in the diagnostics."""

    @pytest.mark.asyncio
    async def test_failed_chunks_use_default_statistics(self) -> None:
        meter = _make_meter(volumes=[None] * 4)

        result = await analyze("talk.mp4", meter=meter)

        assert "medianMax=-25.0dB" in result.analysis_info
        assert "chunks=0/4 (defaults)" in result.analysis_info
        # Clean tier without percentiles: (-35 * 1.0 + -32 * 0.5) / 1.5
        assert result.threshold_db == pytest.approx(-34.0)

    @pytest.mark.asyncio
    async def test_missing_percentiles_omit_dependent_candidates(self) -> None:
        meter = _make_meter(percentiles=None)

        result = await analyze("talk.mp4", meter=meter)

        assert "DR=n/a" in result.analysis_info
        assert "[CLEAN]" in result.analysis_info

    @pytest.mark.parametrize("duration", [0.0, math.nan])
    @pytest.mark.asyncio
    async def test_invalid_duration_continues_with_defaults(self, duration: float) -> None:
        meter = _make_meter(duration=duration, passes=[[], []])

        result = await analyze("broken.mp4", meter=meter)

        meter.measure_volume.assert_not_awaited()
        meter.measure_percentiles.assert_awaited_once_with(
            "broken.mp4", None, band_filter=True
        )
        assert result.silences == []
        assert "(defaults)" in result.analysis_info


class TestAnalyzeFailures:
    """Fatal failures propagate to the caller."""

    @pytest.mark.asyncio
    async def test_detection_failure_propagates(self) -> None:
        meter = _make_meter(passes=[DetectionError("decode failed")])

        with pytest.raises(DetectionError):
            await analyze("talk.mp4", meter=meter)

    @pytest.mark.asyncio
    async def test_probe_failure_propagates(self) -> None:
        meter = _make_meter()
        meter.probe_duration.side_effect = ProbeError("ffprobe failed")

        with pytest.raises(ProbeError):
            await analyze("talk.mp4", meter=meter)

        meter.measure_volume.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unrunnable_ffprobe_is_a_probe_error(self, tmp_path: object) -> None:
        missing = os.path.join(str(tmp_path), "bin")
        meter = FFmpegAudioMeter(
            ffmpeg_path=os.path.join(missing, "ffmpeg"),
            ffprobe_path=os.path.join(missing, "ffprobe"),
        )

        with pytest.raises(ProbeError):
            await analyze("talk.mp4", meter=meter)


class TestDefaultMeter:
    """The meter provider is resolved from the environment."""

    @pytest.mark.asyncio
    async def test_uses_environment_provider(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AUDIO_METER_PROVIDER", "custom")
        meter = _make_meter()
        factory = MagicMock(return_value=meter)

        with patch.dict(METER_ENGINES, {"custom": factory}):
            await analyze("talk.mp4")

        factory.assert_called_once_with()
        meter.probe_duration.assert_awaited_once_with("talk.mp4")

    @pytest.mark.asyncio
    async def test_unknown_provider_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AUDIO_METER_PROVIDER", "nope")

        with pytest.raises(MeterError):
            await analyze("talk.mp4")
