"""Tests for silence_engine.observability.metrics module."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import asdict

import pytest

from silence_engine.observability.logger import StructuredJsonFormatter
from silence_engine.observability.metrics import (
    AnalysisMetrics,
    StageTimer,
    log_analysis_metrics,
)


def _make_metrics(**overrides) -> AnalysisMetrics:
    """Create an AnalysisMetrics with sensible defaults, applying any overrides."""
    defaults = {
        "path": "talk.mp4",
        "total_duration_seconds": 600.0,
        "noise_tier": "noisy",
        "threshold_db": -27.5,
        "was_adjusted": True,
        "silence_count": 42,
        "silence_percent": 18.5,
        "chunks_requested": 20,
        "chunks_measured": 19,
        "percentiles_available": True,
        "wall_time_seconds": 14.2,
    }
    defaults.update(overrides)
    return AnalysisMetrics(**defaults)


class TestAnalysisMetrics:
    def test_serializes_all_fields_to_dict(self) -> None:
        d = asdict(_make_metrics(stage_timings={"probe": 0.1}))

        assert d["path"] == "talk.mp4"
        assert d["noise_tier"] == "noisy"
        assert d["threshold_db"] == -27.5
        assert d["was_adjusted"] is True
        assert d["chunks_measured"] == 19
        assert d["stage_timings"] == {"probe": 0.1}

    def test_stage_timings_default_to_empty_dict(self) -> None:
        assert _make_metrics().stage_timings == {}


class TestStageTimer:
    def test_measures_elapsed_time(self) -> None:
        timer = StageTimer("chunks")
        with timer:
            time.sleep(0.01)

        assert timer.duration_seconds >= 0.01
        assert timer.start_time is not None
        assert timer.end_time is not None
        assert timer.end_time >= timer.start_time

    def test_records_into_timings(self) -> None:
        timings: dict[str, float] = {}
        with StageTimer("probe", timings):
            pass

        assert set(timings) == {"probe"}
        assert timings["probe"] >= 0.0

    def test_failed_stage_is_marked(self) -> None:
        timings: dict[str, float] = {}
        with pytest.raises(RuntimeError):
            with StageTimer("dual_pass", timings):
                raise RuntimeError("boom")

        assert "_dual_pass_failed" in timings
        assert "dual_pass" not in timings


class TestLogAnalysisMetrics:
    def test_logs_metrics_as_extra(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="silence_engine.observability.metrics"):
            log_analysis_metrics(_make_metrics())

        assert len(caplog.records) == 1
        record = caplog.records[0]
        assert record.metrics["silence_count"] == 42
        assert record.stage == "complete"

    def test_formatter_renders_metrics(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="silence_engine.observability.metrics"):
            log_analysis_metrics(_make_metrics())

        payload = json.loads(StructuredJsonFormatter().format(caplog.records[0]))
        assert payload["metrics"]["noise_tier"] == "noisy"
        assert payload["message"] == "Analysis metrics for talk.mp4"
