"""Event model for update-protocol observability.

Defines event types for the component update pipeline.  Pounce lifecycle
events are recorded alongside them unchanged.

All events are frozen dataclasses with:
- ``timestamp_ns``: Monotonic nanosecond timestamp
- ``component_id``: The component instance the event concerns
- Descriptive fields for the specific event type

Thread Safety:
    All events are frozen (immutable) and safe to share across threads.

"""

import time
from dataclasses import dataclass


# ---------------------------------------------------------------------------
# Component lifecycle events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ComponentMounted:
    """A component was mounted and rendered for the first time.

    Attributes:
        component_id: New component instance id.
        properties: Number of public properties in the signed state.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    component_id: str
    properties: int
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class MutationApplied:
    """A client mutation ran to completion (possibly rolled back).

    Attributes:
        component_id: Component instance id.
        kind: ``propertySet`` or ``methodCall``.
        name: Property or method name.
        changed: Names of properties whose value changed.
        errors: Number of validation messages collected.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    component_id: str
    kind: str
    name: str
    changed: tuple[str, ...]
    errors: int
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class PatchesComputed:
    """Two renderings were diffed.

    Attributes:
        component_id: Component instance id.
        patches_count: Total number of patches.
        by_op: ``(op, count)`` pairs, sorted by op name.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    component_id: str
    patches_count: int
    by_op: tuple[tuple[str, int], ...]
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Rejections
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RequestRejected:
    """A request ended in the rejected state.

    Attributes:
        component_id: Component instance id as presented by the client.
        client_id: Rate-limit identity of the client.
        stage: Last pipeline stage reached before the rejection.
        status: Transport status answered.
        reason: Machine-readable reason string.
        target: Property or method name, when known.
        detail: Server-side detail (never sent to the client).
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    component_id: str
    client_id: str
    stage: str
    status: int
    reason: str
    target: str
    detail: str
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Profiling
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PipelineProfile:
    """Per-stage timing of one update request.

    Attributes:
        component_id: Component instance id.
        patches_count: Number of patches in the response.
        verify_ms: Envelope decode and verification.
        invoke_ms: Hydration and mutation.
        render_ms: Old and new rendering, including parsing.
        diff_ms: Patch computation.
        sign_ms: Signing the new state.
        total_ms: End to end.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    component_id: str
    patches_count: int
    verify_ms: float
    invoke_ms: float
    render_ms: float
    diff_ms: float
    sign_ms: float
    total_ms: float
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Union type
# ---------------------------------------------------------------------------

type StackEvent = (
    ComponentMounted
    | MutationApplied
    | PatchesComputed
    | RequestRejected
    | PipelineProfile
)


def now_ns() -> int:
    """Return the current monotonic clock value in nanoseconds."""
    return time.monotonic_ns()
