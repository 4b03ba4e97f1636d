from __future__ import annotations

import logging
import os
from collections.abc import Iterable

log = logging.getLogger(__name__)


class IdFileStore:
    """
    Seen-id cache kept in a plain text file, one id per line.

    A missing file is created empty on first load. `persist_id_set` rewrites
    the whole file via a temp file + rename.
    """

    def __init__(self, path: str) -> None:
        self.path = path

    def load_id_set(self) -> set[str]:
        if not os.path.exists(self.path):
            _ensure_parent(self.path)
            with open(self.path, "a", encoding="utf-8"):
                pass
            log.info("Created empty job id file at %s", self.path)
            return set()

        with open(self.path, encoding="utf-8") as f:
            ids = {line.strip() for line in f if line.strip()}
        log.debug("Loaded %d job ids from %s", len(ids), self.path)
        return ids

    def persist_id_set(self, ids: Iterable[str]) -> None:
        _ensure_parent(self.path)
        tmp = f"{self.path}.tmp"
        with open(tmp, "w", encoding="utf-8") as f:
            for job_id in sorted(ids):
                f.write(f"{job_id}\n")
        os.replace(tmp, self.path)


def _ensure_parent(path: str) -> None:
    d = os.path.dirname(os.path.abspath(path)) or "."
    os.makedirs(d, exist_ok=True)
