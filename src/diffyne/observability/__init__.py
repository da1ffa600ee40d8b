"""Observability — structured events for the update protocol.

Aggregates events from:
- **Pounce**: Connection lifecycle (open, request, response, disconnect, close)
- **Diffyne**: Mounts, mutations, diffs, rejections, and per-stage timing

All events are frozen dataclasses with nanosecond timestamps, safe for
concurrent production from multiple worker threads.

Quick Start:
    >>> from diffyne.observability import StackCollector, EventLog
    >>> log = EventLog()
    >>> collector = StackCollector(log)
    >>> # Pass collector to Pounce as lifecycle_collector
    >>> # The pipeline records events via collector.record_*(...)

"""

from diffyne.observability.collector import StackCollector
from diffyne.observability.events import (
    ComponentMounted,
    MutationApplied,
    PatchesComputed,
    PipelineProfile,
    RequestRejected,
    StackEvent,
    now_ns,
)
from diffyne.observability.log import EventLog
from diffyne.observability.profiler import PipelineProfiler, compute_aggregate_stats

__all__ = [
    "ComponentMounted",
    "EventLog",
    "MutationApplied",
    "PatchesComputed",
    "PipelineProfile",
    "PipelineProfiler",
    "RequestRejected",
    "StackCollector",
    "StackEvent",
    "compute_aggregate_stats",
    "now_ns",
]
