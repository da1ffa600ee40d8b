"""Pipeline profiler — per-stage latency of update requests.

Records the timing of each stage of one update request and emits a
``PipelineProfile`` event to the ``EventLog``.

Thread Safety:
    A profiler instance belongs to one request (single-writer); the
    pipeline creates one per request.  Aggregate queries are protected by
    the underlying ``EventLog`` lock.

"""

from __future__ import annotations

import sys
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING

from diffyne.observability.events import PipelineProfile, now_ns

if TYPE_CHECKING:
    from collections.abc import Iterator

    from diffyne.observability.log import EventLog

STAGES = ("verify", "invoke", "render", "diff", "sign")


@dataclass(slots=True)
class _Timer:
    """Accumulates timing for a named pipeline stage."""

    name: str
    _start: float = 0.0
    elapsed_ms: float = 0.0

    def start(self) -> None:
        self._start = time.perf_counter()

    def stop(self) -> None:
        if self._start > 0:
            self.elapsed_ms += (time.perf_counter() - self._start) * 1000
            self._start = 0.0


class PipelineProfiler:
    """Records per-stage timing for a single update request.

    Usage::

        profiler = PipelineProfiler(event_log)

        profiler.begin("counter:3f2a9c")
        with profiler.stage("verify"):
            ...
        with profiler.stage("render"):
            ...
        profiler.finish(patches_count=2)

    After ``finish()``, a ``PipelineProfile`` event is appended to the log
    and, when verbose, a one-line summary is printed to stderr.

    """

    __slots__ = ("_component_id", "_log", "_t0", "_timers", "_verbose")

    def __init__(self, log: EventLog, *, verbose: bool = False) -> None:
        self._log = log
        self._verbose = verbose
        self._component_id = ""
        self._t0 = 0.0
        self._timers = {name: _Timer(name=name) for name in STAGES}

    def begin(self, component_id: str) -> None:
        """Start profiling a new request."""
        self._component_id = component_id
        self._t0 = time.perf_counter()
        for timer in self._timers.values():
            timer.elapsed_ms = 0.0

    def start(self, stage: str) -> None:
        """Start timing a named stage."""
        timer = self._timers.get(stage)
        if timer is not None:
            timer.start()

    def stop(self, stage: str) -> None:
        """Stop timing a named stage."""
        timer = self._timers.get(stage)
        if timer is not None:
            timer.stop()

    @contextmanager
    def stage(self, name: str) -> Iterator[None]:
        """Time the enclosed block as stage *name*."""
        self.start(name)
        try:
            yield
        finally:
            self.stop(name)

    def finish(self, *, patches_count: int = 0) -> PipelineProfile:
        """Finish profiling and emit the ``PipelineProfile`` event.

        Returns the profile for testing / inspection.

        """
        total_ms = (time.perf_counter() - self._t0) * 1000 if self._t0 > 0 else 0.0

        profile = PipelineProfile(
            component_id=self._component_id,
            patches_count=patches_count,
            verify_ms=self._timers["verify"].elapsed_ms,
            invoke_ms=self._timers["invoke"].elapsed_ms,
            render_ms=self._timers["render"].elapsed_ms,
            diff_ms=self._timers["diff"].elapsed_ms,
            sign_ms=self._timers["sign"].elapsed_ms,
            total_ms=total_ms,
            timestamp_ns=now_ns(),
        )

        self._log.append(profile)

        if self._verbose:
            self._print_summary(profile)

        return profile

    def _print_summary(self, p: PipelineProfile) -> None:
        """Print a one-line timing summary to stderr."""
        patches = "patch" if p.patches_count == 1 else "patches"
        stages = ", ".join(
            f"{name}: {getattr(p, f'{name}_ms'):.1f}ms" for name in STAGES
        )
        print(
            f"  [{p.total_ms:.1f}ms] {p.component_id} -> "
            f"{p.patches_count} {patches} ({stages})",
            file=sys.stderr,
        )


def compute_aggregate_stats(
    log: EventLog,
    *,
    limit: int = 100,
) -> dict:
    """Compute latency statistics from recent ``PipelineProfile`` events.

    Returns a dict with p50, p95, p99, and per-stage averages.

    """
    profiles = log.query(event_type=PipelineProfile, limit=limit)
    if not profiles:
        return {"count": 0}

    totals = sorted(p.total_ms for p in profiles)
    count = len(totals)

    def percentile(data: list[float], pct: float) -> float:
        idx = int(len(data) * pct / 100)
        return data[min(idx, len(data) - 1)]

    return {
        "count": count,
        "total_ms": {
            "p50": round(percentile(totals, 50), 1),
            "p95": round(percentile(totals, 95), 1),
            "p99": round(percentile(totals, 99), 1),
            "min": round(totals[0], 1),
            "max": round(totals[-1], 1),
        },
        "avg_by_stage_ms": {
            name: round(sum(getattr(p, f"{name}_ms") for p in profiles) / count, 1)
            for name in STAGES
        },
        "avg_patches": round(sum(p.patches_count for p in profiles) / count, 1),
    }
