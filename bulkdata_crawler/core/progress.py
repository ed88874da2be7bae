"""
Join barrier and progress counter for the two crawl phases.
"""

import sys
import threading

from tqdm import tqdm


class JoinBarrier:
    """Tracks outstanding units of work whose number is not known up front.

    Every spawned unit calls :meth:`add` before it is scheduled and
    :meth:`done` when it returns; :meth:`wait` blocks until the count
    drops back to zero.  Children must be added before their parent
    calls :meth:`done`, otherwise the barrier may open early.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._pending = 0

    def add(self, n: int = 1) -> None:
        with self._cond:
            self._pending += n

    def done(self) -> None:
        with self._cond:
            if self._pending <= 0:
                raise RuntimeError("JoinBarrier.done() called more times than add()")
            self._pending -= 1
            if self._pending == 0:
                self._cond.notify_all()

    @property
    def pending(self) -> int:
        with self._cond:
            return self._pending

    def wait(self, timeout: float | None = None) -> bool:
        """Block until no work is pending.  Returns ``False`` on timeout."""
        with self._cond:
            return self._cond.wait_for(lambda: self._pending == 0, timeout)


class ProgressCounter:
    """Thread-safe completed/total counter rendered as a single
    overwritten ``Progress: <completed>/<total>`` line.

    *total* may grow while work is discovered (crawl phase).
    """

    def __init__(
        self,
        total: int = 0,
        label: str = "Progress",
        enabled: bool = True,
        stream=None,
    ) -> None:
        self._lock = threading.Lock()
        self._completed = 0
        self._total = total
        self._bar = tqdm(
            total=total,
            file=stream or sys.stdout,
            bar_format=label + ": {n}/{total}",
            disable=not enabled,
            leave=True,
            mininterval=0,
            miniters=1,
        )

    def grow(self, n: int = 1) -> None:
        with self._lock:
            self._total += n
            self._bar.total = self._total
            self._bar.refresh()

    def update(self) -> int:
        """Record one finished unit and return the new completed count."""
        with self._lock:
            self._completed += 1
            self._bar.update(1)
            return self._completed

    @property
    def completed(self) -> int:
        with self._lock:
            return self._completed

    @property
    def total(self) -> int:
        with self._lock:
            return self._total

    def close(self) -> None:
        with self._lock:
            self._bar.close()

    def __enter__(self) -> "ProgressCounter":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
