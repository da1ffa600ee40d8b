"""Stack collector — one sink for pipeline and server events.

Implements Pounce's ``LifecycleCollector`` protocol so it can be passed
directly to Pounce workers, and provides the ``record_*`` methods the
update pipeline reports through.

Thread Safety:
    The collector delegates to ``EventLog`` which is internally locked.
    Safe for concurrent use from multiple Pounce worker threads.

"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from diffyne.observability.events import (
    ComponentMounted,
    MutationApplied,
    PatchesComputed,
    RequestRejected,
    now_ns,
)
from diffyne.observability.log import EventLog


class StackCollector:
    """Unified event collector.

    Args:
        log: The EventLog to store events in.

    """

    __slots__ = ("_log",)

    def __init__(self, log: EventLog | None = None) -> None:
        self._log = log if log is not None else EventLog()

    @property
    def log(self) -> EventLog:
        """The underlying event log."""
        return self._log

    # ----- Pounce LifecycleCollector protocol -----

    def record(self, event: Any) -> None:
        """Record a Pounce lifecycle event as-is."""
        self._log.append(event)

    # ----- Update pipeline events -----

    def record_mount(self, component_id: str, *, properties: int = 0) -> None:
        self._log.append(
            ComponentMounted(
                component_id=component_id,
                properties=properties,
                timestamp_ns=now_ns(),
            )
        )

    def record_mutation(
        self,
        component_id: str,
        kind: str,
        name: str,
        *,
        changed: Sequence[str] = (),
        errors: int = 0,
    ) -> None:
        """Record a completed (or rolled back) mutation."""
        self._log.append(
            MutationApplied(
                component_id=component_id,
                kind=kind,
                name=name,
                changed=tuple(changed),
                errors=errors,
                timestamp_ns=now_ns(),
            )
        )

    def record_patches(self, component_id: str, summary: Mapping[str, int]) -> None:
        """Record a diff result from its per-op summary."""
        self._log.append(
            PatchesComputed(
                component_id=component_id,
                patches_count=sum(summary.values()),
                by_op=tuple(sorted(summary.items())),
                timestamp_ns=now_ns(),
            )
        )

    def record_rejection(
        self,
        component_id: str,
        *,
        client_id: str = "",
        stage: str = "",
        status: int = 400,
        reason: str = "",
        target: str = "",
        detail: str = "",
    ) -> None:
        """Record a rejected request."""
        self._log.append(
            RequestRejected(
                component_id=component_id,
                client_id=client_id,
                stage=stage,
                status=status,
                reason=reason,
                target=target,
                detail=detail,
                timestamp_ns=now_ns(),
            )
        )
