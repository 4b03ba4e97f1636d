from __future__ import annotations

import copy
import logging
from typing import Any

from service import logging_utils as _svc_logging

# Keys that should be redacted from structured logs
_REDACT_KEYS = {
    "password",
    "token",
    "apikey",
    "api_key",
    "openai_api_key",
    "secret",
    "authorization",
    "auth",
    "bearer",
}


def _redact_record(record: dict[str, Any]) -> dict[str, Any]:
    """
    Shallow-copy record and redact obvious secret-like fields at top level.
    The JSONL writer applies a deep pass as well.
    """
    redacted = copy.copy(record)
    for k in list(redacted.keys()):
        lk = str(k).lower()
        if lk in _REDACT_KEYS or lk.endswith("_secret") or lk.endswith("_api_key"):
            redacted[k] = "***REDACTED***"
    return redacted


def activity(record: dict[str, Any]) -> None:
    """
    Append an activity record to the JSONL activity log.
    Falls back to stdlib logging if the log directory is unwritable.
    """
    payload = _redact_record(record)
    try:
        _svc_logging.write_activity_log(payload)
    except OSError:
        logging.getLogger("job_scout.activity").info(payload)


def error(record: dict[str, Any]) -> None:
    """
    Append an error record to the JSONL error log.
    Falls back to stdlib logging if the log directory is unwritable.
    """
    payload = _redact_record(record)
    try:
        _svc_logging.write_error_log(payload)
    except OSError:
        logging.getLogger("job_scout.error").error(payload)
