# tests/test_job_scout_extract.py
import pytest

from modules.job_scout.lib import extract
from modules.job_scout.lib.models import (
    NO_DESCRIPTION,
    SALARY_NOT_SPECIFIED,
    UNKNOWN_COMPANY,
    UNKNOWN_DATE,
    UNKNOWN_LOCATION,
    UNKNOWN_TITLE,
)

from .conftest import DETAIL_HTML, EMPTY_HTML

URL = "https://seeker.example.test/jobsearch/powersearch.aspx?JobID=12345&search=true"


def test_parse_full_detail_page():
    job = extract.parse_detail(DETAIL_HTML, URL)
    assert job.job_id == "12345"
    assert job.title == "Senior Backend Engineer"
    assert job.company == "Acme Corp"
    assert job.location == "Seattle, WA"
    assert job.posted_date == "2024-01-15"
    assert job.expires_date == "2/15/2024"
    assert job.salary == "$120,000 - $150,000"
    assert job.description == "Build and run Go services on Kubernetes."
    assert job.url == URL


def test_empty_page_gets_fallbacks():
    job = extract.parse_detail(EMPTY_HTML, URL)
    assert job.title == UNKNOWN_TITLE
    assert job.company == UNKNOWN_COMPANY
    assert job.location == UNKNOWN_LOCATION
    assert job.posted_date == UNKNOWN_DATE
    assert job.salary == SALARY_NOT_SPECIFIED
    assert job.description == NO_DESCRIPTION
    assert job.expires_date == ""


def test_alternate_layout_selectors():
    html = """
    <html><body>
      <h1 class="job-view-header">Data Engineer</h1>
      <span class="job-view-employer">Globex</span>
      <span class="job-view-location">Tacoma, WA</span>
      <span class="job-view-posting-date">March 3, 2024</span>
      <dl><span><dt>Salary Range</dt><dd>$50 - $60 hourly</dd></span></dl>
      <div class="job-view-description">Pipelines in Python.</div>
    </body></html>
    """
    job = extract.parse_detail(html, URL)
    assert job.title == "Data Engineer"
    assert job.company == "Globex"
    assert job.location == "Tacoma, WA"
    assert job.posted_date == "March 3, 2024"
    assert job.salary == "$50 - $60 hourly"
    assert job.description == "Pipelines in Python."


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("1/2/2024", "2024-01-02"),
        ("12/31/2023", "2023-12-31"),
        (" 3/7/2025 ", "2025-03-07"),
        ("yesterday", "yesterday"),
    ],
)
def test_normalize_posted_date(raw, expected):
    assert extract.normalize_posted_date(raw) == expected


def test_unparseable_posted_date_kept_raw():
    html = "<p>Posted: Today - Expires: <strong>Soon</strong></p>"
    job = extract.parse_detail(html, URL)
    assert job.posted_date == "Today"
    assert job.expires_date == "Soon"


def test_extract_job_id():
    assert extract.extract_job_id(URL) == "12345"
    assert extract.extract_job_id("https://seeker.example.test/about") is None
    assert extract.extract_job_id("") is None
