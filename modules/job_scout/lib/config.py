from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .utils import getenv_str, truthy


# -----------------------------
# Exceptions
# -----------------------------
class ConfigError(ValueError):
    """Raised when provided kwargs/env cannot form a valid Settings."""


# -----------------------------
# Defaults
# -----------------------------
DEFAULT_QUERY = "software developer"
DEFAULT_BASE_URL = "https://seeker.worksourcewa.com/"
DEFAULT_MAX_PAGES = 2
DEFAULT_REQUEST_DELAY = 0.5
DEFAULT_MAX_CONCURRENCY = 25
DEFAULT_DETAIL_PARALLELISM = 25
DEFAULT_MODEL = "gpt-4.1-nano"
DEFAULT_SQLITE_PATH = "/app/local/state/jobscout.db"
DEFAULT_HTTP_TIMEOUT = 15.0


# -----------------------------
# Models
# -----------------------------
@dataclass
class Settings:
    """
    Canonical configuration for a 'job_scout' run.

    Each field may come from kwargs (highest priority), then its environment
    variable, then the default:

        query               QUERY                   "software developer"
        base_url            BASE_URL                "https://seeker.worksourcewa.com/"
        max_pages           MAX_PAGES               2
        request_delay       REQUEST_DELAY_SECONDS   0.5
        max_concurrency     MAX_CONCURRENCY         25
        detail_parallelism  DETAIL_PARALLELISM      25
        dry_run             API_DRY_RUN             false
        openai_model        OPENAI_MODEL            "gpt-4.1-nano"
        sqlite_path         SQLITE_PATH             "/app/local/state/jobscout.db"
        use_id_cache        USE_JOB_ID_FILE         true
        job_ids_path        JOB_IDS_PATH            unset (seen ids live in SQLite)
        http_timeout        HTTP_TIMEOUT_SECONDS    15.0

    `api_key_env` names the variable holding the OpenAI key; it must be set
    unless this is a dry run.
    """

    query: str = DEFAULT_QUERY
    base_url: str = DEFAULT_BASE_URL
    max_pages: int = DEFAULT_MAX_PAGES
    request_delay: float = DEFAULT_REQUEST_DELAY
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    detail_parallelism: int = DEFAULT_DETAIL_PARALLELISM
    dry_run: bool = False

    openai_model: str = DEFAULT_MODEL
    api_key_env: str = "OPENAI_API_KEY"

    sqlite_path: str = DEFAULT_SQLITE_PATH
    use_id_cache: bool = True
    job_ids_path: str | None = None
    http_timeout: float = DEFAULT_HTTP_TIMEOUT

    # ------------- constructors -------------
    @classmethod
    def from_env_and_kwargs(cls, kwargs: Mapping[str, Any] | None) -> Settings:
        """Build Settings from kwargs, falling back to env and defaults, with validation."""
        kw = {k: v for k, v in dict(kwargs or {}).items() if v is not None}

        def pick(key: str, env: str, default: Any) -> Any:
            if key in kw:
                return kw[key]
            env_val = getenv_str(env)
            return env_val if env_val is not None else default

        base_url = str(pick("base_url", "BASE_URL", DEFAULT_BASE_URL)).strip()
        if base_url and not base_url.endswith("/"):
            base_url += "/"

        job_ids_path = str(pick("job_ids_path", "JOB_IDS_PATH", "")).strip() or None

        settings = cls(
            query=str(pick("query", "QUERY", DEFAULT_QUERY)).strip(),
            base_url=base_url,
            max_pages=_as_int("max_pages", pick("max_pages", "MAX_PAGES", DEFAULT_MAX_PAGES)),
            request_delay=_as_float(
                "request_delay", pick("request_delay", "REQUEST_DELAY_SECONDS", DEFAULT_REQUEST_DELAY)
            ),
            max_concurrency=_as_int(
                "max_concurrency", pick("max_concurrency", "MAX_CONCURRENCY", DEFAULT_MAX_CONCURRENCY)
            ),
            detail_parallelism=_as_int(
                "detail_parallelism",
                pick("detail_parallelism", "DETAIL_PARALLELISM", DEFAULT_DETAIL_PARALLELISM),
            ),
            dry_run=truthy(pick("dry_run", "API_DRY_RUN", False)),
            openai_model=str(pick("openai_model", "OPENAI_MODEL", DEFAULT_MODEL)).strip(),
            api_key_env=str(kw.get("api_key_env") or "OPENAI_API_KEY").strip(),
            sqlite_path=str(pick("sqlite_path", "SQLITE_PATH", DEFAULT_SQLITE_PATH)).strip(),
            use_id_cache=truthy(pick("use_id_cache", "USE_JOB_ID_FILE", True)),
            job_ids_path=job_ids_path,
            http_timeout=_as_float("http_timeout", pick("http_timeout", "HTTP_TIMEOUT_SECONDS", DEFAULT_HTTP_TIMEOUT)),
        )
        _validate_settings(settings)
        return settings


# -----------------------------
# Helpers
# -----------------------------
def _as_int(name: str, value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"'{name}' must be an integer, got {value!r}.") from e


def _as_float(name: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"'{name}' must be a number, got {value!r}.") from e


def _validate_settings(s: Settings) -> None:
    if not s.query:
        raise ConfigError("'query' cannot be empty.")
    if not s.base_url:
        raise ConfigError("'base_url' cannot be empty.")
    if not s.base_url.startswith(("http://", "https://")):
        raise ConfigError(f"'base_url' must be an http(s) URL, got {s.base_url!r}.")

    for name in ("max_pages", "max_concurrency", "detail_parallelism"):
        if getattr(s, name) <= 0:
            raise ConfigError(f"'{name}' must be >= 1.")
    if s.request_delay < 0:
        raise ConfigError("'request_delay' must be >= 0.")
    if s.http_timeout <= 0:
        raise ConfigError("'http_timeout' must be > 0.")

    if not s.sqlite_path:
        raise ConfigError("'sqlite_path' cannot be empty.")
    if not s.openai_model:
        raise ConfigError("'openai_model' cannot be empty.")

    if not s.dry_run and not (os.getenv(s.api_key_env) or "").strip():
        raise ConfigError(f"{s.api_key_env} must be set unless dry_run is enabled.")
