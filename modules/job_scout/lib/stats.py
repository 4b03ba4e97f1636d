"""
Concurrent run counters.

Each counter owns its lock, so increments on different counters never contend.
Readers go through `JobStats.snapshot()`; derived ratios are computed from a
snapshot only.
"""

from __future__ import annotations

import threading
from dataclasses import asdict, dataclass


class Counter:
    """A non-negative integer with an atomic increment."""

    __slots__ = ("_lock", "_value")

    def __init__(self) -> None:
        self._value = 0
        self._lock = threading.Lock()

    def incr(self, n: int = 1) -> None:
        if n < 0:
            raise ValueError("counters only move forward")
        with self._lock:
            self._value += n

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


@dataclass(frozen=True)
class StatsSnapshot:
    total: int = 0
    processed: int = 0
    skipped: int = 0
    unrelated: int = 0
    successful: int = 0
    failed: int = 0

    def success_rate(self) -> float:
        """Successfully enriched jobs as a percentage of all discovered jobs."""
        if self.total <= 0:
            return 0.0
        return self.successful / self.total * 100.0

    def jobs_per_second(self, elapsed_seconds: float) -> float:
        if elapsed_seconds <= 0:
            return 0.0
        return self.processed / elapsed_seconds

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


class JobStats:
    """
    Counters shared by the crawler and the worker pool.

    total       links that resolved to a job id (new or duplicate)
    processed   jobs a worker picked up
    skipped     duplicate ids seen by the crawler
    unrelated   enriched jobs flagged as not software engineering
    successful  jobs the classifier enriched
    failed      jobs the classifier could not enrich
    """

    def __init__(self) -> None:
        self.total = Counter()
        self.processed = Counter()
        self.skipped = Counter()
        self.unrelated = Counter()
        self.successful = Counter()
        self.failed = Counter()

    def snapshot(self) -> StatsSnapshot:
        # Downstream counters are read before the ones they derive from, so a
        # mid-run snapshot never shows more outcomes than inputs.
        successful = self.successful.value
        failed = self.failed.value
        unrelated = self.unrelated.value
        processed = self.processed.value
        skipped = self.skipped.value
        total = self.total.value
        return StatsSnapshot(
            total=total,
            processed=processed,
            skipped=skipped,
            unrelated=unrelated,
            successful=successful,
            failed=failed,
        )
