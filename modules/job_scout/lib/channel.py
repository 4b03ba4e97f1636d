from __future__ import annotations

import queue
import threading
from collections.abc import Iterator

from .models import Job

_CLOSED = object()
_POLL_SECONDS = 0.1


class JobChannel:
    """
    Hand-off between the crawler (producer) and the worker pool (consumer).

    Capacity is a single slot: `send` blocks until the consumer has taken the
    previous job. Iterating yields jobs until `close()` has been called and
    everything sent before it has been drained.
    """

    def __init__(self) -> None:
        self._q: queue.Queue[object] = queue.Queue(maxsize=1)
        self._closed = threading.Event()

    def send(self, job: Job, cancel: threading.Event | None = None) -> bool:
        """
        Block until `job` is handed off. Returns False (job not delivered) if
        `cancel` is set while waiting or the channel is already closed.
        """
        if self._closed.is_set():
            return False
        return self._put(job, cancel)

    def close(self, cancel: threading.Event | None = None) -> None:
        if self._closed.is_set():
            return
        self._closed.set()
        self._put(_CLOSED, cancel)

    def _put(self, item: object, cancel: threading.Event | None) -> bool:
        while True:
            if cancel is not None and cancel.is_set():
                return False
            try:
                self._q.put(item, timeout=_POLL_SECONDS)
                return True
            except queue.Full:
                continue

    def __iter__(self) -> Iterator[Job]:
        while True:
            try:
                item = self._q.get(timeout=_POLL_SECONDS)
            except queue.Empty:
                # A cancelled producer may close without delivering the marker.
                if self._closed.is_set() and self._q.empty():
                    return
                continue
            if item is _CLOSED:
                return
            yield item  # type: ignore[misc]
