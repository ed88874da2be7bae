"""
Per-task failure records and per-phase / per-run summaries.
"""

import threading
from collections import Counter
from dataclasses import dataclass, field

CRAWL = "crawl"
DOWNLOAD = "download"


@dataclass(frozen=True)
class TaskFailure:
    url: str
    phase: str
    error: Exception

    def __str__(self) -> str:
        return f"[{self.phase}] {self.url}: {type(self.error).__name__}: {self.error}"


@dataclass
class PhaseReport:
    """Outcome of one phase: how many units ran, what they did, and
    which ones failed."""

    phase: str
    total: int = 0
    outcomes: Counter = field(default_factory=Counter)
    failures: list[TaskFailure] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record(self, outcome: str) -> None:
        with self._lock:
            self.outcomes[outcome] += 1

    def fail(self, url: str, error: Exception) -> TaskFailure:
        failure = TaskFailure(url, self.phase, error)
        with self._lock:
            self.failures.append(failure)
            self.outcomes["error"] += 1
        return failure

    @property
    def ok(self) -> bool:
        return not self.failures


@dataclass
class RunReport:
    crawl: PhaseReport
    download: PhaseReport

    @property
    def failures(self) -> list[TaskFailure]:
        return self.crawl.failures + self.download.failures

    @property
    def ok(self) -> bool:
        return self.crawl.ok and self.download.ok
