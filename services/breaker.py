from __future__ import annotations

from threading import Lock


class AggregationCircuitBreaker:
    """One-way latch: once tripped it stays tripped for the life of the process."""

    def __init__(self) -> None:
        self._tripped = False
        self._lock = Lock()

    def is_tripped(self) -> bool:
        with self._lock:
            return self._tripped

    def trip(self) -> bool:
        """Trip the breaker. Returns True only for the call that changed its state."""
        with self._lock:
            if self._tripped:
                return False
            self._tripped = True
            return True
