# tests/test_logging.py
import logging

from modules.job_scout.lib import logging_bridge
from service import logging_utils

from .conftest import activity_log_path, activity_records, error_records


def test_activity_record_written_with_metadata_and_redaction(frozen_utc):
    logging_bridge.activity({
        "component": "job_scout.test",
        "op": "sample",
        "openai_api_key": "sk-live-123",
        "nested": {"Authorization": "Bearer abc", "ids": {"2", "1"}},
        "note": "Bearer xyz",
    })

    assert activity_log_path().endswith("activity-test-2025-01-01.jsonl")
    [rec] = activity_records()
    assert rec["op"] == "sample"
    assert rec["openai_api_key"] == "***REDACTED***"
    assert rec["nested"]["Authorization"] == "***REDACTED***"
    assert rec["nested"]["ids"] == ["1", "2"]
    assert rec["note"] == "Bearer ***REDACTED***"
    assert set(rec["_meta"]) == {"host", "pid"}


def test_error_records_go_to_separate_file():
    logging_bridge.error({"component": "job_scout.test", "op": "boom", "error": "ValueError()"})
    assert [r["op"] for r in error_records()] == ["boom"]
    assert activity_records() == []


def test_unwritable_log_dir_falls_back_to_stdlib(tmp_path, monkeypatch, caplog):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x", encoding="utf-8")
    monkeypatch.setenv("LOG_DIR", str(blocker / "logs"))

    with caplog.at_level(logging.INFO, logger="job_scout.activity"):
        logging_bridge.activity({"component": "job_scout.test", "op": "fallback"})

    assert any("fallback" in r.getMessage() for r in caplog.records)


def test_size_rotation(monkeypatch):
    monkeypatch.setenv("ACTIVITY_LOG_MAX_BYTES", "1")
    logging_utils.write_activity_log({"op": "first"})
    logging_utils.write_activity_log({"op": "second"})
    # the first file was rotated aside; the live file holds only the newest record
    assert [r["op"] for r in activity_records()] == ["second"]
