from __future__ import annotations

import threading
from typing import Any

from .lib.config import Settings
from .lib.engine import RunResult
from .lib.engine import run_once as _run_engine
from .lib.logging_bridge import activity as log_activity


def run(*, cancel: threading.Event | None = None, **kwargs: Any) -> RunResult:
    """
    Entry point for the 'job_scout' module.

    Accepts kwargs (from the CLI or a caller), including:
      query: str = "software developer"
      base_url: str = "https://seeker.worksourcewa.com/"
      max_pages: int = 2
      request_delay: float = 0.5
      max_concurrency: int = 25
      detail_parallelism: int = 25
      dry_run: bool = False
      sqlite_path: str = "/app/local/state/jobscout.db"
      use_id_cache: bool = True
      job_ids_path: Optional[str]  # plain-text id cache instead of SQLite

    Unset kwargs fall back to the environment (see Settings).

    Returns the RunResult for the completed run.
    """
    settings = Settings.from_env_and_kwargs(kwargs)

    log_activity({
        "component": "job_scout.main",
        "op": "start",
        "query": settings.query,
        "max_pages": settings.max_pages,
        "flags": {
            "dry_run": settings.dry_run,
            "use_id_cache": settings.use_id_cache,
        },
    })

    return _run_engine(settings, cancel=cancel)
