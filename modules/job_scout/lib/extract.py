"""
Detail-page extraction for WorkSource job listings.

Every field is looked up through an ordered list of selectors; the first one
that yields text wins. Anything still missing gets a fixed fallback literal, so
a Job never leaves this module with an empty display field.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from datetime import datetime

from bs4 import BeautifulSoup

from .models import (
    NO_DESCRIPTION,
    SALARY_NOT_SPECIFIED,
    UNKNOWN_COMPANY,
    UNKNOWN_DATE,
    UNKNOWN_LOCATION,
    UNKNOWN_TITLE,
    Job,
)

JOB_ID_RE = re.compile(r"JobID=(\d+)")
POSTED_RE = re.compile(r"Posted:\s*(.+?)\s*-")
EXPIRES_RE = re.compile(r"Expires:\s*<strong>(.*?)</strong>", re.S)

TITLE_SELECTORS = ("h1.margin-bottom", "h1.job-view-header")
COMPANY_SELECTORS = ("h4 .capital-letter", "span.job-view-employer")
LOCATION_SELECTORS = ("h4 small.wrappable", "span.job-view-location")
POSTED_TEXT_SELECTOR = "p:-soup-contains('Posted:')"
POSTED_FALLBACK_SELECTORS = ("span.job-view-posting-date",)
SALARY_SELECTORS = ("p.job-view-salary",)
DESCRIPTION_SELECTORS = (
    "span#TrackingJobBody",
    "div.JobViewJobBody",
    "div.job-view-description",
    "div.directJobBody",
    "#jobViewFrame",
)


def extract_job_id(url: str) -> str | None:
    """Numeric job id from a detail URL, or None if the URL has none."""
    m = JOB_ID_RE.search(url or "")
    return m.group(1) if m else None


def parse_detail(html: str, url: str) -> Job:
    soup = BeautifulSoup(html, "html.parser")

    title = _first_text(soup, TITLE_SELECTORS)
    company = _first_text(soup, COMPANY_SELECTORS)
    location = _first_text(soup, LOCATION_SELECTORS)
    posted = _posted_date(soup) or _first_text(soup, POSTED_FALLBACK_SELECTORS)
    salary = _first_text(soup, SALARY_SELECTORS) or _salary_from_definition_list(soup)
    description = _first_text(soup, DESCRIPTION_SELECTORS)

    m = EXPIRES_RE.search(html or "")
    expires = m.group(1).strip() if m else ""

    return Job(
        job_id=extract_job_id(url) or "",
        title=title or UNKNOWN_TITLE,
        company=company or UNKNOWN_COMPANY,
        location=location or UNKNOWN_LOCATION,
        posted_date=posted or UNKNOWN_DATE,
        salary=salary or SALARY_NOT_SPECIFIED,
        url=url,
        description=description or NO_DESCRIPTION,
        expires_date=expires,
    )


def normalize_posted_date(raw: str) -> str:
    """'1/2/2024' -> '2024-01-02'; anything unparseable comes back unchanged."""
    s = raw.strip()
    try:
        return datetime.strptime(s, "%m/%d/%Y").strftime("%Y-%m-%d")
    except ValueError:
        return s


# --------------------------------------------------------------------- #
def _text_of(soup: BeautifulSoup, selector: str) -> str:
    # Concatenate every match, like a selection's combined text.
    parts = [el.get_text(" ", strip=True) for el in soup.select(selector)]
    return " ".join(p for p in parts if p).strip()


def _first_text(soup: BeautifulSoup, selectors: Sequence[str]) -> str:
    for sel in selectors:
        text = _text_of(soup, sel)
        if text:
            return text
    return ""


def _posted_date(soup: BeautifulSoup) -> str:
    text = _text_of(soup, POSTED_TEXT_SELECTOR)
    if not text:
        return ""
    m = POSTED_RE.search(text)
    if not m:
        return ""
    return normalize_posted_date(m.group(1))


def _salary_from_definition_list(soup: BeautifulSoup) -> str:
    salary = ""
    for span in soup.select("dl span"):
        dt = span.find("dt")
        if dt and "Salary" in dt.get_text(" ", strip=True):
            dd = span.find("dd")
            salary = dd.get_text(" ", strip=True) if dd else ""
    return salary
