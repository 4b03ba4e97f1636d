"""
Pipeline orchestration for one job_scout run.

Features:
  - Crawler (producer) and enrichment pool (consumer) run concurrently,
    connected by a single-slot JobChannel
  - Enrichment concurrency bounded by a semaphore (`max_concurrency`)
  - Dry-run mode: fixed mock enrichment, nothing persisted
  - Seen-id cache loaded before the crawl and persisted after the drain
  - Dependency injection for testability (client, enricher, storage, id store)
  - Structured summary via `logging_bridge`
"""

from __future__ import annotations

import json
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass
from typing import Any, Protocol

from . import logging_bridge
from .cache import DedupCache
from .channel import JobChannel
from .config import Settings
from .enrichment import Enricher, RetryingEnrichmentClient, mock_enrichment
from .frontier import Frontier, PageFetcher
from .models import Job
from .stats import JobStats, StatsSnapshot

log = logging.getLogger(__name__)


class JobSink(Protocol):
    def put_job(self, job: Job) -> None: ...


class IdSetStore(Protocol):
    def load_id_set(self) -> set[str]: ...

    def persist_id_set(self, ids: Any) -> None: ...


@dataclass(frozen=True)
class RunResult:
    execution_seconds: float
    stats: StatsSnapshot
    cache_enabled: bool
    cache_initial_size: int
    cache_final_size: int
    jobs_added: int

    def as_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["stats"] = self.stats.as_dict()
        out["execution_seconds"] = round(self.execution_seconds, 3)
        return out


# =============================================================================
# ENRICHMENT WORKER POOL
# =============================================================================
def process_jobs(
    channel: JobChannel,
    stats: JobStats,
    *,
    enricher: Enricher | None,
    storage: JobSink | None,
    max_concurrency: int,
    dry_run: bool = False,
    cancel: threading.Event | None = None,
) -> set[str]:
    """
    Drain `channel`, running one enrichment task per job with at most
    `max_concurrency` in flight. Returns once the channel is closed and every
    task has finished.

    Returns the ids of the jobs a worker actually started on.
    """
    cancel = cancel or threading.Event()
    limit = max(int(max_concurrency), 1)
    slots = threading.BoundedSemaphore(limit)
    started: set[str] = set()
    started_lock = threading.Lock()

    def _worker(job: Job) -> None:
        counted = False
        try:
            if cancel.is_set():
                return
            stats.processed.incr()
            counted = True
            with started_lock:
                started.add(job.job_id)
            _process_one(job, stats, enricher=enricher, storage=storage, dry_run=dry_run)
        except Exception as e:
            # Raised before any terminal counter moved.
            if counted:
                stats.failed.incr()
            log.exception("Unexpected error processing job %s", job.job_id)
            logging_bridge.error({
                "component": "job_scout.engine",
                "op": "process_job",
                "job_id": job.job_id,
                "error": repr(e),
            })
        finally:
            slots.release()

    with ThreadPoolExecutor(max_workers=limit, thread_name_prefix="job-scout-enrich") as pool:
        for job in channel:
            if cancel.is_set():
                # Keep draining so a blocked producer can finish.
                continue
            slots.acquire()
            pool.submit(_worker, job)
    return started


def _process_one(
    job: Job,
    stats: JobStats,
    *,
    enricher: Enricher | None,
    storage: JobSink | None,
    dry_run: bool,
) -> None:
    if dry_run:
        mocked = mock_enrichment(job)
        payload = json.dumps(mocked.as_record())
        log.info("[dry run] mock enrichment for job %s (%d bytes)", job.job_id, len(payload))
        return

    if enricher is None:
        raise RuntimeError("an enricher is required unless dry_run is set")

    enriched, ok = enricher.enrich(job)
    if enriched is None:
        stats.failed.incr()
        log.warning("Enrichment returned nothing for job %s", job.job_id)
        return

    if ok:
        stats.successful.incr()
    else:
        stats.failed.incr()
    if not enriched.is_software_engineer_related:
        stats.unrelated.incr()

    if storage is None:
        return
    try:
        storage.put_job(enriched)
    except Exception as e:
        log.warning("Failed to store job %s: %r", job.job_id, e)
        logging_bridge.error({
            "component": "job_scout.engine",
            "op": "put_job",
            "job_id": job.job_id,
            "error": repr(e),
        })


# =============================================================================
# MAIN ORCHESTRATOR
# =============================================================================
def run_once(
    settings: Settings,
    *,
    client: PageFetcher | None = None,
    enricher: Enricher | None = None,
    storage: JobSink | None = None,
    id_store: IdSetStore | None = None,
    cancel: threading.Event | None = None,
) -> RunResult:
    """
    Run one crawl + enrichment cycle.

    Args:
        settings: Validated run configuration.
        client: Page fetcher; defaults to an HttpClient built from settings.
        enricher: Enrichment service; defaults to RetryingEnrichmentClient.
        storage: Job sink; defaults to the SQLite JobStore at settings.sqlite_path.
        id_store: Seen-id persistence; defaults to the id file when
            settings.job_ids_path is set, otherwise the SQLite store.
        cancel: Event that stops the run cooperatively when set.

    Individual job failures are logged and counted, never raised.
    """
    t0 = time.perf_counter()
    cancel = cancel or threading.Event()

    owns_client = client is None
    if client is None:
        from .http_client import HttpClient

        client = HttpClient(timeout=settings.http_timeout, pool_maxsize=settings.detail_parallelism)
    if storage is None:
        from .db import JobStore

        storage = JobStore(settings.sqlite_path)
    if enricher is None and not settings.dry_run:
        enricher = RetryingEnrichmentClient(model=settings.openai_model, api_key_env=settings.api_key_env)
    if id_store is None and settings.use_id_cache:
        id_store = _default_id_store(settings, storage)

    # -------------------------------------------------------------------------
    # LOAD SEEN IDS
    # -------------------------------------------------------------------------
    if settings.use_id_cache and id_store is not None:
        cache = DedupCache.load(id_store)
        log.info("Loaded %d job ids from cache", cache.initial_size)
    else:
        cache = DedupCache()

    stats = JobStats()
    channel = JobChannel()
    frontier = Frontier(
        client,
        cache,
        stats,
        base_url=settings.base_url,
        max_pages=settings.max_pages,
        request_delay=settings.request_delay,
        detail_parallelism=settings.detail_parallelism,
        cancel=cancel,
    )

    # -------------------------------------------------------------------------
    # CRAWL (producer thread) + ENRICH (this thread)
    # -------------------------------------------------------------------------
    try:
        with ThreadPoolExecutor(max_workers=1, thread_name_prefix="job-scout-crawl") as crawler:
            crawl_future = crawler.submit(frontier.crawl, settings.query, channel)
            started = process_jobs(
                channel,
                stats,
                enricher=enricher,
                storage=storage,
                max_concurrency=settings.max_concurrency,
                dry_run=settings.dry_run,
                cancel=cancel,
            )
            crawl_future.result()
    finally:
        if owns_client:
            client.close()  # type: ignore[union-attr]

    # -------------------------------------------------------------------------
    # PERSIST SEEN IDS
    # -------------------------------------------------------------------------
    # A cancelled run keeps only ids a worker picked up; the rest are retried.
    if cancel.is_set():
        final_ids = cache.initial | started
    else:
        final_ids = cache.snapshot()
    if settings.use_id_cache and id_store is not None:
        try:
            id_store.persist_id_set(final_ids)
        except Exception as e:
            log.error("Failed to persist job id cache: %r", e)
            logging_bridge.error({
                "component": "job_scout.engine",
                "op": "persist_ids",
                "count": len(final_ids),
                "error": repr(e),
            })

    result = RunResult(
        execution_seconds=time.perf_counter() - t0,
        stats=stats.snapshot(),
        cache_enabled=settings.use_id_cache,
        cache_initial_size=cache.initial_size,
        cache_final_size=len(final_ids),
        jobs_added=len(final_ids) - cache.initial_size,
    )

    # -------------------------------------------------------------------------
    # SUMMARY LOG (always emitted)
    # -------------------------------------------------------------------------
    logging_bridge.activity({
        "component": "job_scout.engine",
        "op": "summary",
        "query": settings.query,
        "dry_run": settings.dry_run,
        "cancelled": cancel.is_set(),
        **result.as_dict(),
    })
    return result


def _default_id_store(settings: Settings, storage: Any) -> IdSetStore:
    if settings.job_ids_path:
        from .id_file import IdFileStore

        return IdFileStore(settings.job_ids_path)
    if hasattr(storage, "load_id_set") and hasattr(storage, "persist_id_set"):
        return storage
    from .db import JobStore

    return JobStore(settings.sqlite_path)
