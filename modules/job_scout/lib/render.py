from __future__ import annotations

from .models import Job
from .stats import StatsSnapshot


def format_summary(stats: StatsSnapshot, elapsed_seconds: float) -> str:
    """
    Plain-text run summary, one metric per line:

        === Job Processing Summary ===
        Total jobs found:     12
        ...
        Success rate:         75.0%
        Throughput:           3.20 jobs/sec
    """
    rows = [
        ("Total jobs found", str(stats.total)),
        ("Jobs processed", str(stats.processed)),
        ("Skipped (seen)", str(stats.skipped)),
        ("Successful", str(stats.successful)),
        ("Failed", str(stats.failed)),
        ("Not SWE related", str(stats.unrelated)),
        ("Execution time", f"{elapsed_seconds:.2f}s"),
        ("Success rate", f"{stats.success_rate():.1f}%"),
        ("Throughput", f"{stats.jobs_per_second(elapsed_seconds):.2f} jobs/sec"),
    ]
    lines = ["=== Job Processing Summary ==="]
    lines.extend(f"{label + ':':<22}{value}" for label, value in rows)
    return "\n".join(lines)


def format_job_line(job: Job | dict) -> str:
    """One-line listing used by `cli latest`."""
    rec = job.as_record() if isinstance(job, Job) else job
    title = rec.get("title") or "(no title)"
    company = rec.get("company") or ""
    posted = rec.get("posted_date") or ""
    return f"{rec.get('job_id', '')}\t{posted}\t{title} @ {company}\t{rec.get('url', '')}"
