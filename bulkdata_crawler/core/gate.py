"""
Bounded concurrency gate shared by the crawl and download phases.
"""

import threading


class Gate:
    """Counting semaphore capping simultaneous network operations.

    Usable as a context manager::

        with gate:
            resp = session.get(url)

    Also tracks the number of holders and the peak reached, so callers
    can verify the bound.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"Gate capacity must be at least 1, got {capacity}")
        self.capacity = capacity
        self._slots = threading.BoundedSemaphore(capacity)
        self._lock = threading.Lock()
        self._in_flight = 0
        self._peak = 0

    def acquire(self) -> None:
        self._slots.acquire()
        with self._lock:
            self._in_flight += 1
            if self._in_flight > self._peak:
                self._peak = self._in_flight

    def release(self) -> None:
        with self._lock:
            self._in_flight -= 1
        self._slots.release()

    @property
    def in_flight(self) -> int:
        with self._lock:
            return self._in_flight

    @property
    def peak(self) -> int:
        with self._lock:
            return self._peak

    def __enter__(self) -> "Gate":
        self.acquire()
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()
