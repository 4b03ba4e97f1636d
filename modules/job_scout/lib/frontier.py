"""
Paginating crawler for WorkSource search results.

Result pages are fetched one at a time with a polite delay between them. Every
job link found on a page goes through the dedup cache; new ids are queued for a
detail fetch on a bounded thread pool, and each parsed detail page is handed to
the output channel.

Cancellation is cooperative: the crawler checks the event between result pages
and before queueing detail fetches, but an HTTP request already in flight runs
to completion.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Protocol
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from . import logging_bridge
from .cache import DedupCache
from .channel import JobChannel
from .extract import extract_job_id, parse_detail
from .stats import JobStats

log = logging.getLogger(__name__)

LINK_SELECTOR = "h2.with-badge a"
DEFAULT_DETAIL_PARALLELISM = 25


class FrontierError(RuntimeError):
    """Raised when the crawler is misused (e.g. started twice)."""


class PageFetcher(Protocol):
    def get_text(self, url: str) -> str: ...


def build_search_url(base_url: str, query: str, page: int) -> str:
    q = query.strip().replace(" ", "+")
    return (
        f"{base_url}jobsearch/powersearch.aspx?q={q}"
        f"&rad_units=miles&pp=25&nosal=true&vw=b&setype=2&pg={page}&re=3"
    )


class Frontier:
    """
    One crawl over the search results for a query.

    A Frontier is single-use: `crawl()` may be called once; a second call
    raises FrontierError.
    """

    def __init__(
        self,
        client: PageFetcher,
        cache: DedupCache,
        stats: JobStats,
        *,
        base_url: str,
        max_pages: int,
        request_delay: float = 0.0,
        detail_parallelism: int = DEFAULT_DETAIL_PARALLELISM,
        cancel: threading.Event | None = None,
    ) -> None:
        self._client = client
        self._cache = cache
        self._stats = stats
        self._base_url = base_url
        self._max_pages = max_pages
        self._delay = max(float(request_delay), 0.0)
        self._parallelism = max(int(detail_parallelism), 1)
        self._cancel = cancel or threading.Event()
        self._started = False
        self._start_lock = threading.Lock()

    def crawl(self, query: str, out: JobChannel) -> None:
        """
        Walk result pages 1..max_pages, emit every new job onto `out`, then
        close `out`. Blocks until all queued detail fetches have finished.
        """
        with self._start_lock:
            if self._started:
                raise FrontierError("Frontier.crawl() can only run once")
            self._started = True

        t0 = time.perf_counter()
        pages_done = 0
        pool = ThreadPoolExecutor(max_workers=self._parallelism, thread_name_prefix="job-scout-detail")
        try:
            page = 1
            while page <= self._max_pages:
                if self._cancel.is_set():
                    log.info("Crawl cancelled before page %d", page)
                    break

                url = build_search_url(self._base_url, query, page)
                log.debug("Fetching results page %d: %s", page, url)
                try:
                    html = self._client.get_text(url)
                except Exception as exc:
                    log.warning("Results page %d failed: %r", page, exc)
                    logging_bridge.error({
                        "component": "job_scout.frontier",
                        "op": "results_page",
                        "page": page,
                        "url": url,
                        "error": repr(exc),
                    })
                    break

                self._queue_links(html, page_url=url, pool=pool, out=out)
                pages_done += 1

                if page >= self._max_pages:
                    log.debug("Reached maximum page limit (%d)", self._max_pages)
                    break
                page += 1
                if self._delay > 0:
                    self._cancel.wait(self._delay)
        finally:
            # Already-queued detail fetches still complete before the channel closes.
            pool.shutdown(wait=True, cancel_futures=self._cancel.is_set())
            out.close(self._cancel)

        logging_bridge.activity({
            "component": "job_scout.frontier",
            "op": "crawl_done",
            "query": query,
            "pages": pages_done,
            "cancelled": self._cancel.is_set(),
            "elapsed_ms": int((time.perf_counter() - t0) * 1000),
        })

    # ------------------------------------------------------------------ #
    def _queue_links(self, html: str, *, page_url: str, pool: ThreadPoolExecutor, out: JobChannel) -> None:
        soup = BeautifulSoup(html, "html.parser")
        for a in soup.select(LINK_SELECTOR):
            href = a.get("href") or ""
            detail_url = urljoin(page_url, href)
            job_id = extract_job_id(detail_url)
            if not job_id:
                continue

            if self._cancel.is_set():
                return
            self._stats.total.incr()
            if self._cache.check_and_insert(job_id):
                self._stats.skipped.incr()
                log.debug("Skipping already processed job: %s", job_id)
                continue

            pool.submit(self._fetch_detail, detail_url, job_id, out)

    def _fetch_detail(self, url: str, job_id: str, out: JobChannel) -> None:
        try:
            html = self._client.get_text(url)
        except Exception as exc:
            log.warning("Detail page for job %s failed: %r", job_id, exc)
            logging_bridge.error({
                "component": "job_scout.frontier",
                "op": "detail_page",
                "job_id": job_id,
                "url": url,
                "error": repr(exc),
            })
            return

        job = parse_detail(html, url)
        if not out.send(job, self._cancel):
            log.debug("Dropped job %s: crawl cancelled", job_id)
            return
        log.debug("Scraped job: %s", job.title)
