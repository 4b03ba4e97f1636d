# tests/test_worksource_live.py
from __future__ import annotations

import os

import pytest

from modules.job_scout.lib import engine
from modules.job_scout.lib.config import Settings
from modules.job_scout.lib.http_client import HttpClient
from modules.job_scout.lib.render import format_summary

from .conftest import FakeStorage


@pytest.mark.live
def test_worksource_dry_run_live(tmp_path):
    """
    Live smoke test: crawl one WorkSource results page in dry-run mode.
    Set QUERY to try a different search.
    """
    settings = Settings.from_env_and_kwargs({
        "query": os.getenv("QUERY") or "software developer",
        "max_pages": 1,
        "dry_run": True,
        "detail_parallelism": 5,
        "sqlite_path": str(tmp_path / "live.db"),
    })
    client = HttpClient(timeout=20.0, pool_maxsize=5)
    try:
        result = engine.run_once(settings, client=client, storage=FakeStorage())
    finally:
        client.close()

    print("\n" + format_summary(result.stats, result.execution_seconds))
    assert result.stats.total >= result.stats.processed + result.stats.skipped
    assert result.cache_final_size == result.cache_initial_size + result.jobs_added
