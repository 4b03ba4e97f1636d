# tests/conftest.py
import datetime as _dt
import json
import os
import re
import tempfile
import threading
import warnings
from dataclasses import replace

import pytest
from freezegun import freeze_time

from modules.job_scout.lib.models import Job

warnings.filterwarnings("error", category=DeprecationWarning, module=r"(modules|service)\..*")

BASE_URL = "https://seeker.example.test/"

# Config env vars a developer shell might export; cleared per test.
_SETTINGS_ENV = (
    "QUERY",
    "BASE_URL",
    "MAX_PAGES",
    "REQUEST_DELAY_SECONDS",
    "MAX_CONCURRENCY",
    "DETAIL_PARALLELISM",
    "API_DRY_RUN",
    "OPENAI_MODEL",
    "OPENAI_API_KEY",
    "SQLITE_PATH",
    "USE_JOB_ID_FILE",
    "JOB_IDS_PATH",
    "HTTP_TIMEOUT_SECONDS",
)


# ---------------------------------------------------------------------
# Live tests are opt-in: use --live or RUN_LIVE_TESTS=1
# ---------------------------------------------------------------------
def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--live",
        action="store_true",
        default=False,
        help="Run tests marked as 'live' (network calls or external services).",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "live: marks tests that perform live network calls or hit external services (skipped by default).",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    run_live = config.getoption("--live") or os.getenv("RUN_LIVE_TESTS") == "1"
    if run_live:
        return
    skip_live = pytest.mark.skip(reason="live tests disabled (use --live or RUN_LIVE_TESTS=1)")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


# ---------------------------------------------------------------------
# Test-wide env defaults (autouse, function-scoped)
# ---------------------------------------------------------------------
@pytest.fixture(autouse=True)
def _env_defaults(monkeypatch, request):
    # Write logs to a throwaway dir so real logs stay clean (per test)
    tmp_logs = tempfile.mkdtemp(prefix="js-pytest-logs-")
    monkeypatch.setenv("LOG_DIR", tmp_logs)
    monkeypatch.setenv("ACTIVITY_LOG_PREFIX", "activity-test")
    monkeypatch.setenv("ERROR_LOG_PREFIX", "error-test")

    if "live" not in request.keywords:
        for name in _SETTINGS_ENV:
            monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def frozen_utc():
    with freeze_time("2025-01-01T00:00:00Z"):
        yield


# ---------------------------------------------------------------------
# Sample pages
# ---------------------------------------------------------------------
DETAIL_HTML = """
<html><body>
  <h1 class="margin-bottom">Senior Backend Engineer</h1>
  <h4><span class="capital-letter">Acme Corp</span> <small class="wrappable">Seattle, WA</small></h4>
  <p>Posted: 1/15/2024 - Expires: <strong>2/15/2024</strong></p>
  <p class="job-view-salary">$120,000 - $150,000</p>
  <span id="TrackingJobBody">Build and run Go services on Kubernetes.</span>
</body></html>
"""

EMPTY_HTML = "<html><body></body></html>"


def results_page(*hrefs: str) -> str:
    links = "\n".join(f'<h2 class="with-badge"><a href="{h}">Job</a></h2>' for h in hrefs)
    return f"<html><body><div class='results'>{links}</div></body></html>"


def job_href(job_id: str) -> str:
    return f"/jobsearch/powersearch.aspx?JobID={job_id}&search=true"


def detail_html(title: str = "Senior Backend Engineer") -> str:
    return DETAIL_HTML.replace("Senior Backend Engineer", title)


# ---------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------
class FakeHttpClient:
    """
    Routes search-result URLs by `pg=N` and detail URLs by `JobID=N`.

    pages:    {page_number: html or Exception}
    details:  {job_id: html or Exception}; missing ids get DETAIL_HTML titled "Job <id>"
    """

    def __init__(self, pages=None, details=None):
        self.pages = dict(pages or {})
        self.details = dict(details or {})
        self.requested: list[str] = []
        self._lock = threading.Lock()
        self.closed = False

    def get_text(self, url: str) -> str:
        with self._lock:
            self.requested.append(url)
        m = re.search(r"JobID=(\d+)", url)
        if m:
            body = self.details.get(m.group(1), detail_html(f"Job {m.group(1)}"))
        else:
            page = int(re.search(r"[?&]pg=(\d+)", url).group(1))
            body = self.pages.get(page, results_page())
        if isinstance(body, Exception):
            raise body
        return body

    def result_page_requests(self) -> list[str]:
        return [u for u in self.requested if "JobID=" not in u]

    def close(self) -> None:
        self.closed = True


class FakeEnricher:
    """
    Enrichment fake. `outcomes` maps job_id -> (related, ok) or None
    (None means the classifier returned nothing).
    """

    def __init__(self, outcomes=None, default=(True, True)):
        self.outcomes = dict(outcomes or {})
        self.default = default
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def enrich(self, job: Job):
        with self._lock:
            self.calls.append(job.job_id)
        outcome = self.outcomes.get(job.job_id, self.default)
        if outcome is None:
            return None, False
        related, ok = outcome
        return replace(job, parsed_description="summary", is_software_engineer_related=related), ok


class FakeStorage:
    """In-memory job sink + id store. `fail_ids` raise on put_job."""

    def __init__(self, initial_ids=(), fail_ids=()):
        self.jobs: dict[str, Job] = {}
        self.ids = set(initial_ids)
        self.fail_ids = set(fail_ids)
        self.persisted: list[frozenset] = []
        self._lock = threading.Lock()

    def put_job(self, job: Job) -> None:
        if job.job_id in self.fail_ids:
            raise RuntimeError(f"write failed for {job.job_id}")
        with self._lock:
            self.jobs.setdefault(job.job_id, job)

    def load_id_set(self) -> set[str]:
        return set(self.ids)

    def persist_id_set(self, ids) -> None:
        snap = frozenset(ids)
        self.persisted.append(snap)
        self.ids = set(snap)


@pytest.fixture
def fake_storage():
    return FakeStorage()


@pytest.fixture
def dry_settings(tmp_path):
    from modules.job_scout.lib.config import Settings

    return Settings.from_env_and_kwargs({
        "base_url": BASE_URL,
        "max_pages": 2,
        "request_delay": 0,
        "max_concurrency": 4,
        "detail_parallelism": 4,
        "dry_run": True,
        "sqlite_path": str(tmp_path / "jobscout.db"),
    })


@pytest.fixture
def enrich_settings(tmp_path, monkeypatch):
    from modules.job_scout.lib.config import Settings

    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    return Settings.from_env_and_kwargs({
        "base_url": BASE_URL,
        "max_pages": 2,
        "request_delay": 0,
        "max_concurrency": 3,
        "detail_parallelism": 4,
        "sqlite_path": str(tmp_path / "jobscout.db"),
    })


# ---------------------------------------------------------------------
# Structured log readers
# ---------------------------------------------------------------------
def _read_jsonl(path: str) -> list[dict]:
    if not os.path.exists(path):
        return []
    with open(path, encoding="utf-8") as f:
        return [json.loads(line) for line in f if line.strip()]


def _today_log(prefix_env: str) -> str:
    today = _dt.date.today().isoformat()
    return os.path.join(os.environ["LOG_DIR"], f"{os.environ[prefix_env]}-{today}.jsonl")


def activity_log_path() -> str:
    return _today_log("ACTIVITY_LOG_PREFIX")


def activity_records() -> list[dict]:
    return _read_jsonl(activity_log_path())


def error_records() -> list[dict]:
    return _read_jsonl(_today_log("ERROR_LOG_PREFIX"))
