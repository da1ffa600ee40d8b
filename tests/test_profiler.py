"""Tests for diffyne.observability.profiler — per-stage request timing."""

import io
import sys
from unittest.mock import patch

from diffyne.observability.events import PipelineProfile
from diffyne.observability.log import EventLog
from diffyne.observability.profiler import STAGES, PipelineProfiler, compute_aggregate_stats


class TestPipelineProfiler:
    """Tests for the request profiler."""

    def test_basic_profile(self) -> None:
        log = EventLog()
        profiler = PipelineProfiler(log)

        profiler.begin("counter:1")
        for name in STAGES:
            profiler.start(name)
            profiler.stop(name)
        profile = profiler.finish(patches_count=2)

        assert profile.component_id == "counter:1"
        assert profile.patches_count == 2
        assert profile.total_ms >= 0
        assert log.query(event_type=PipelineProfile) == [profile]

    def test_stage_context_manager(self) -> None:
        profiler = PipelineProfiler(EventLog())
        profiler.begin("counter:1")
        with profiler.stage("render"):
            sum(range(1000))
        profile = profiler.finish()
        assert profile.render_ms >= 0
        assert profile.verify_ms == 0.0

    def test_stage_accumulates(self) -> None:
        """A stage entered twice reports the sum of both spans."""
        profiler = PipelineProfiler(EventLog())
        profiler.begin("counter:1")
        with profiler.stage("invoke"):
            pass
        first = profiler._timers["invoke"].elapsed_ms
        with profiler.stage("invoke"):
            sum(range(1000))
        assert profiler._timers["invoke"].elapsed_ms >= first

    def test_unknown_stage_ignored(self) -> None:
        profiler = PipelineProfiler(EventLog())
        profiler.begin("counter:1")
        profiler.start("compile")
        profiler.stop("compile")
        profiler.finish()

    def test_finish_without_begin(self) -> None:
        profile = PipelineProfiler(EventLog()).finish()
        assert profile.total_ms == 0.0

    def test_verbose_prints_summary(self) -> None:
        profiler = PipelineProfiler(EventLog(), verbose=True)

        buf = io.StringIO()
        with patch.object(sys, "stderr", buf):
            profiler.begin("todo-list:9f")
            with profiler.stage("diff"):
                pass
            profiler.finish(patches_count=3)

        output = buf.getvalue()
        assert "todo-list:9f" in output
        assert "3 patches" in output
        assert "diff:" in output

    def test_verbose_singular(self) -> None:
        profiler = PipelineProfiler(EventLog(), verbose=True)
        buf = io.StringIO()
        with patch.object(sys, "stderr", buf):
            profiler.begin("counter:1")
            profiler.finish(patches_count=1)
        assert "1 patch " in buf.getvalue()

    def test_silent_when_not_verbose(self) -> None:
        profiler = PipelineProfiler(EventLog(), verbose=False)

        buf = io.StringIO()
        with patch.object(sys, "stderr", buf):
            profiler.begin("counter:1")
            profiler.finish(patches_count=1)

        assert buf.getvalue() == ""


class TestAggregateStats:
    """Tests for compute_aggregate_stats."""

    def test_empty_log(self) -> None:
        assert compute_aggregate_stats(EventLog()) == {"count": 0}

    def test_basic_stats(self) -> None:
        log = EventLog()
        profiler = PipelineProfiler(log)

        for i in range(10):
            profiler.begin(f"counter:{i}")
            with profiler.stage("verify"):
                pass
            profiler.finish(patches_count=i % 2)

        stats = compute_aggregate_stats(log)

        assert stats["count"] == 10
        assert set(stats["total_ms"]) == {"p50", "p95", "p99", "min", "max"}
        assert set(stats["avg_by_stage_ms"]) == set(STAGES)
        assert stats["avg_patches"] == 0.5

    def test_percentiles_are_ordered(self) -> None:
        log = EventLog()
        profiler = PipelineProfiler(log)

        for i in range(20):
            profiler.begin(f"counter:{i}")
            profiler.finish()

        stats = compute_aggregate_stats(log)

        assert stats["total_ms"]["p50"] <= stats["total_ms"]["p95"]
        assert stats["total_ms"]["p95"] <= stats["total_ms"]["p99"]
        assert stats["total_ms"]["min"] <= stats["total_ms"]["max"]

    def test_limit(self) -> None:
        log = EventLog()
        profiler = PipelineProfiler(log)
        for i in range(5):
            profiler.begin(f"counter:{i}")
            profiler.finish()
        assert compute_aggregate_stats(log, limit=3)["count"] == 3
