"""Event log — bounded, queryable store of protocol and server events.

Keeps the most recent ``StackEvent`` objects in a ring buffer and answers
the questions an operator asks of a running server: what happened to one
component instance, which components see the most traffic, and why
requests were rejected.

Component ids have the form ``<name>:<token>``, so filtering by a component
name selects every instance of that component.

Thread Safety:
    All methods are protected by a ``threading.Lock``.  Readers copy the
    buffer under the lock and filter outside it.

"""

import threading
from collections import Counter, deque
from collections.abc import Iterable
from typing import Any

from diffyne.observability.events import RequestRejected, StackEvent


def _component_of(event: object) -> str:
    return getattr(event, "component_id", None) or ""


def _component_name(component_id: str) -> str:
    return component_id.partition(":")[0]


class EventLog:
    """Bounded event store.

    When the buffer is full the oldest events are discarded.  Pounce
    lifecycle events (which carry no component id) are stored alongside the
    protocol events and are only reachable through type and time filters.

    Args:
        max_events: Maximum number of events to retain.

    """

    __slots__ = ("_events", "_lock", "_max_events")

    def __init__(self, max_events: int = 10_000) -> None:
        self._max_events = max_events
        self._events: deque[StackEvent] = deque(maxlen=max_events)
        self._lock = threading.Lock()

    def append(self, event: StackEvent) -> None:
        with self._lock:
            self._events.append(event)

    def append_many(self, events: Iterable[StackEvent]) -> None:
        with self._lock:
            self._events.extend(events)

    def _snapshot(self) -> list[StackEvent]:
        with self._lock:
            return list(self._events)

    def query(
        self,
        *,
        event_type: type | None = None,
        since_ns: int = 0,
        component: str | None = None,
        limit: int = 100,
    ) -> list[StackEvent]:
        """Matching events, most recent first.

        Args:
            event_type: Only events of this type.
            since_ns: Only events stamped at or after this monotonic time.
            component: Only events whose component id starts with this
                prefix (``"counter"`` or ``"counter:3f2a"``).
            limit: Maximum number of events to return.

        """
        results: list[StackEvent] = []
        for event in reversed(self._snapshot()):
            if len(results) >= limit:
                break
            if event_type is not None and not isinstance(event, event_type):
                continue
            if since_ns and getattr(event, "timestamp_ns", 0) < since_ns:
                continue
            if component is not None and not _component_of(event).startswith(component):
                continue
            results.append(event)
        return results

    def recent(self, n: int = 20) -> list[StackEvent]:
        """The *n* most recent events, oldest first."""
        return self._snapshot()[-n:]

    def clear(self) -> int:
        """Drop every event; return how many were dropped."""
        with self._lock:
            count = len(self._events)
            self._events.clear()
            return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    # ----- summaries -----

    def rejections(self) -> dict[str, int]:
        """Rejected requests counted by reason (``forbidden``, ...)."""
        return dict(Counter(
            event.reason for event in self._snapshot() if isinstance(event, RequestRejected)
        ))

    def stats(self) -> dict[str, Any]:
        """Counts by event type, by component name, and by rejection reason."""
        events = self._snapshot()
        by_type = Counter(type(event).__name__ for event in events)
        by_component = Counter(
            _component_name(component_id)
            for event in events
            if (component_id := _component_of(event))
        )
        rejections = Counter(
            event.reason for event in events if isinstance(event, RequestRejected)
        )
        return {
            "total": len(events),
            "max_events": self._max_events,
            "by_type": dict(by_type),
            "by_component": dict(by_component),
            "rejections": dict(rejections),
        }
