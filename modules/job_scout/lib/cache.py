from __future__ import annotations

import threading
from collections.abc import Iterable
from typing import Protocol


class IdSetSource(Protocol):
    def load_id_set(self) -> set[str]: ...


class DedupCache:
    """
    Set of job ids already seen, by earlier runs or by this one.

    `check_and_insert` is the only mutator and runs under a single lock, so two
    crawler threads racing on the same id can never both treat it as new.
    """

    def __init__(self, initial: Iterable[str] = ()) -> None:
        self._ids: set[str] = {str(i) for i in initial if str(i).strip()}
        self._initial = frozenset(self._ids)
        self._lock = threading.Lock()

    @classmethod
    def load(cls, source: IdSetSource) -> DedupCache:
        return cls(source.load_id_set())

    def check_and_insert(self, job_id: str) -> bool:
        """Record `job_id`; return True if it was already present."""
        with self._lock:
            if job_id in self._ids:
                return True
            self._ids.add(job_id)
            return False

    def __contains__(self, job_id: object) -> bool:
        with self._lock:
            return job_id in self._ids

    def __len__(self) -> int:
        with self._lock:
            return len(self._ids)

    def snapshot(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._ids)

    @property
    def initial_size(self) -> int:
        return len(self._initial)

    @property
    def jobs_added(self) -> int:
        return len(self) - len(self._initial)

    @property
    def initial(self) -> frozenset[str]:
        """Ids loaded before the run started."""
        return self._initial
