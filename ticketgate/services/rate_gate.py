"""
Per-client admission control.

ALGORITHM: Fixed-window counter
===============================

Each client key (normally the caller's IP) owns one window:

  - first request, or now > window expiry  -> count = 1, expiry = now + W, admit
  - otherwise                              -> count += 1
  - count > N                              -> reject, retry after (expiry - now)

State is process-local: two workers each admit up to N, and a restart forgets
every window. Inventory correctness never depends on the gate; the database
reserve is authoritative.

The clock is injectable (`time.monotonic` by default).

Windows of idle keys linger until `prune()` drops them; `admit()` prunes every
PRUNE_EVERY calls.
"""

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from ticketgate.core.metrics import record_admission

PRUNE_EVERY = 1024


@dataclass(frozen=True)
class Admission:
    allowed: bool
    retry_after_seconds: int = 0


@dataclass
class RateWindow:
    count: int
    expires_at: float


class RateGate:
    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        name: str = "default",
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.name = name
        self._clock = clock
        self._windows: dict[str, RateWindow] = {}
        self._lock = threading.Lock()
        self._calls = 0

    def admit(self, client_key: str) -> Admission:
        now = self._clock()
        with self._lock:
            self._calls += 1
            if self._calls % PRUNE_EVERY == 0:
                self._prune_locked(now)

            window = self._windows.get(client_key)
            if window is None or now > window.expires_at:
                self._windows[client_key] = RateWindow(count=1, expires_at=now + self.window_seconds)
                admission = Admission(allowed=True)
            else:
                window.count += 1
                if window.count > self.max_requests:
                    retry_after = max(1, math.ceil(window.expires_at - now))
                    admission = Admission(allowed=False, retry_after_seconds=retry_after)
                else:
                    admission = Admission(allowed=True)

        record_admission(self.name, admission.allowed)
        return admission

    def prune(self) -> int:
        """Drop expired windows. Returns the number removed."""
        with self._lock:
            return self._prune_locked(self._clock())

    def _prune_locked(self, now: float) -> int:
        expired = [key for key, w in self._windows.items() if now > w.expires_at]
        for key in expired:
            del self._windows[key]
        return len(expired)

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()

    def __len__(self) -> int:
        return len(self._windows)
