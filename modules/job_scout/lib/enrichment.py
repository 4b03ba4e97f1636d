"""
Job enrichment through the OpenAI structured-outputs API.

`RetryingEnrichmentClient.classify` sends one job's title and description and
returns validated `EnrichmentFields`, or None on any terminal failure. Only
rate limiting (HTTP 429) is retried, through tenacity with exponential backoff
and full jitter:

    the wait after failed attempt i (0-indexed) is uniform[0, min(BASE_DELAY * 2**i, MAX_DELAY))

for at most MAX_ATTEMPTS attempts, with no wait after the last one. Every other
API error, an empty response and a response that does not match the schema
fail immediately.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import replace
from typing import Any, Protocol

import openai
from pydantic import ValidationError
from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_random_exponential,
)

from modules._shared.utils import OpenAIChat, json_schema_format

from . import logging_bridge
from .models import EnrichmentFields, Job

log = logging.getLogger(__name__)

BASE_DELAY = 0.5
MAX_DELAY = 10.0
MAX_ATTEMPTS = 10
RATE_LIMITED = 429

SCHEMA_NAME = "job_parsing_response"
SCHEMA_DESCRIPTION = "Parsed job posting information"
DEFAULT_MODEL = "gpt-4.1-nano"


class ChatBackend(Protocol):
    def chat(self, system_msg: str | None, user_msg: str, *, response_format: dict[str, Any] | None = None) -> str: ...


class Enricher(Protocol):
    def enrich(self, job: Job) -> tuple[Job | None, bool]: ...


def _is_rate_limited(exc: BaseException) -> bool:
    return isinstance(exc, openai.APIStatusError) and exc.status_code == RATE_LIMITED


def enrichment_response_format() -> dict[str, Any]:
    return json_schema_format(
        SCHEMA_NAME,
        EnrichmentFields.model_json_schema(),
        description=SCHEMA_DESCRIPTION,
    )


class RetryingEnrichmentClient:
    def __init__(
        self,
        chat: ChatBackend | None = None,
        *,
        model: str = DEFAULT_MODEL,
        api_key_env: str = "OPENAI_API_KEY",
        max_attempts: int = MAX_ATTEMPTS,
        base_delay: float = BASE_DELAY,
        max_delay: float = MAX_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._chat = chat or OpenAIChat(model_env=model, api_key_env=api_key_env)
        self._max_attempts = max_attempts
        self._base_delay = base_delay
        self._max_delay = max_delay
        self._sleep = sleep
        self._response_format = enrichment_response_format()

    # ---- Enricher ----
    def enrich(self, job: Job) -> tuple[Job | None, bool]:
        fields = self.classify(job.title, job.description, job_id=job.job_id)
        if fields is None:
            return None, False
        if not fields.is_software_engineer_related:
            log.debug("Classifier marked job %s as not software related: %s", job.job_id, job.title)
        return job.with_enrichment(fields), True

    def classify(self, title: str, description: str, *, job_id: str = "") -> EnrichmentFields | None:
        message = f"{title}\n{description}"
        content = self._send_with_retry(message, job_id=job_id)
        if content is None:
            return None
        try:
            return EnrichmentFields.model_validate_json(content)
        except ValidationError as exc:
            self._fail(job_id, "parse", exc)
            return None

    # ------------------------------------------------------------------ #
    def _send_with_retry(self, message: str, *, job_id: str) -> str | None:
        retrying = Retrying(
            retry=retry_if_exception(_is_rate_limited),
            wait=wait_random_exponential(multiplier=self._base_delay, max=self._max_delay),
            stop=stop_after_attempt(self._max_attempts),
            sleep=self._sleep,
            before_sleep=self._log_backoff,
        )
        try:
            return retrying(self._chat.chat, None, message, response_format=self._response_format)
        except RetryError:
            self._fail(job_id, "rate_limit", f"max retries ({self._max_attempts}) reached for rate limiting")
            return None
        except (openai.OpenAIError, RuntimeError) as exc:
            self._fail(job_id, "request", exc)
            return None

    def _log_backoff(self, state: RetryCallState) -> None:
        delay = state.next_action.sleep if state.next_action else 0.0
        log.info(
            "Rate limited: waiting %d ms before retry %d/%d",
            int(delay * 1000),
            state.attempt_number,
            self._max_attempts,
        )

    def _fail(self, job_id: str, stage: str, exc: object) -> None:
        log.warning("Enrichment failed for job %s at %s: %r", job_id, stage, exc)
        logging_bridge.error({
            "component": "job_scout.enrichment",
            "op": stage,
            "job_id": job_id,
            "error": repr(exc),
        })


def mock_enrichment(job: Job) -> Job:
    """Fixed enrichment used in dry-run mode; never calls the classifier."""
    return replace(
        job,
        parsed_description=f"Mock parsed description for {job.title}",
        min_degree="Bachelor's",
        min_years_experience=3,
        modality="Remote",
        domain="Software Development",
        languages=("Go", "Python"),
        technologies=("Docker", "Kubernetes"),
    )
