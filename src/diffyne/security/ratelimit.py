"""Rate limiter — per-client request budget in fixed windows.

The one piece of process-wide mutable state in the update protocol.  Each
(client, action group) pair owns a counter that starts at its first hit and
resets once the window has elapsed.  Increment-and-compare happens under a
single lock so concurrent requests from one client are never undercounted.
Expired windows are dropped periodically as hits arrive, so the table only
holds clients seen within the last window or so.

Thread Safety:
    All methods are protected by a ``threading.Lock``.

"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

from diffyne._errors import RateLimitError

if TYPE_CHECKING:
    from diffyne._types import ActionGroup, ClientID

# Expired windows are dropped once every this many counted hits
PRUNE_INTERVAL = 1024


@dataclass(slots=True)
class _Window:
    started: float
    count: int


class RateLimiter:
    """Fixed-window request counter keyed by client and action group.

    Args:
        limits: Maximum hits per window for each group.  Groups with no entry
            (or a limit of 0 or less) are not limited.
        window: Window length in seconds.
        clock: Monotonic clock, injectable for tests.

    """

    __slots__ = ("_clock", "_hits", "_limits", "_lock", "_window", "_windows")

    def __init__(
        self,
        limits: Mapping[str, int],
        window: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._limits = dict(limits)
        self._window = window
        self._clock = clock
        self._windows: dict[tuple[str, str], _Window] = {}
        self._hits = 0
        self._lock = threading.Lock()

    def hit(self, client_id: ClientID, group: ActionGroup) -> int:
        """Count one request; return the hits remaining in this window.

        Raises:
            RateLimitError: The client exhausted the group's budget.  The
                rejected request is not counted.

        """
        limit = self._limits.get(group, 0)
        if limit <= 0:
            return -1

        key = (client_id, group)
        with self._lock:
            now = self._clock()
            self._hits += 1
            if self._hits % PRUNE_INTERVAL == 0:
                self._drop_expired(now)
            window = self._windows.get(key)
            if window is None or now - window.started >= self._window:
                window = _Window(started=now, count=0)
                self._windows[key] = window
            if window.count >= limit:
                retry_after = max(0.0, window.started + self._window - now)
                raise RateLimitError(client_id, group, retry_after)
            window.count += 1
            return limit - window.count

    def prune(self) -> int:
        """Drop expired windows; return how many were removed."""
        with self._lock:
            return self._drop_expired(self._clock())

    def _drop_expired(self, now: float) -> int:
        expired = [k for k, w in self._windows.items() if now - w.started >= self._window]
        for key in expired:
            del self._windows[key]
        return len(expired)

    def reset(self, client_id: ClientID | None = None) -> None:
        """Forget counters for one client, or for everyone."""
        with self._lock:
            if client_id is None:
                self._windows.clear()
                return
            for key in [k for k in self._windows if k[0] == client_id]:
                del self._windows[key]

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)
