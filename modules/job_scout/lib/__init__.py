# modules/job_scout/lib/__init__.py
from __future__ import annotations

# Re-export commonly-used types for convenience
from .cache import DedupCache
from .config import ConfigError, Settings
from .engine import RunResult, process_jobs, run_once
from .frontier import Frontier, FrontierError
from .models import EnrichmentFields, Job
from .stats import JobStats, StatsSnapshot

__all__ = [
    "ConfigError",
    "DedupCache",
    "EnrichmentFields",
    "Frontier",
    "FrontierError",
    "Job",
    "JobStats",
    "RunResult",
    "Settings",
    "StatsSnapshot",
    "process_jobs",
    "run_once",
]
