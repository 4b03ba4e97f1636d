from __future__ import annotations

import contextlib
import json
import os
import sqlite3
from collections.abc import Iterable

from .logging_bridge import error as log_error
from .models import Job
from .utils import now_iso


class JobStore:
    """
    SQLite-backed storage for enriched jobs and the seen-id cache.

    Each call opens its own connection, so one store can be shared by all
    worker threads.
    """

    def __init__(self, sqlite_path: str) -> None:
        self.sqlite_path = sqlite_path
        init_db(sqlite_path)

    def put_job(self, job: Job) -> None:
        """
        Insert `job`. A row that already exists for the job id is left alone
        and counts as success. Raises sqlite3.Error on anything else.
        """
        rec = job.as_record()
        try:
            with _connect(self.sqlite_path) as conn:
                _apply_pragmas(conn)
                conn.execute(
                    """
                    INSERT OR IGNORE INTO jobs (
                      job_id, title, company, location, modality, posted_date, expires_date,
                      salary, url, min_years_experience, min_degree, domain, description,
                      parsed_description, languages, technologies, is_software_engineer_related,
                      stored_utc
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        rec["job_id"],
                        rec["title"],
                        rec["company"],
                        rec["location"],
                        rec["modality"],
                        rec["posted_date"],
                        rec["expires_date"],
                        rec["salary"],
                        rec["url"],
                        rec["min_years_experience"],
                        rec["min_degree"],
                        rec["domain"],
                        rec["description"],
                        rec["parsed_description"],
                        json.dumps(rec["languages"]),
                        json.dumps(rec["technologies"]),
                        1 if rec["is_software_engineer_related"] else 0,
                        now_iso(),
                    ),
                )
        except sqlite3.Error as e:
            log_error({
                "component": "job_scout.db",
                "op": "put_job",
                "job_id": job.job_id,
                "sqlite_path": self.sqlite_path,
                "error": repr(e),
            })
            raise

    def load_id_set(self) -> set[str]:
        with _connect(self.sqlite_path) as conn:
            _apply_pragmas(conn)
            rows = conn.execute("SELECT job_id FROM seen_ids").fetchall()
        return {r[0] for r in rows}

    def persist_id_set(self, ids: Iterable[str]) -> None:
        """Add every id in `ids` to the seen-id table (existing ids are kept)."""
        ts = now_iso()
        with _connect(self.sqlite_path) as conn:
            _apply_pragmas(conn)
            cur = conn.cursor()
            cur.execute("BEGIN IMMEDIATE")
            cur.executemany(
                "INSERT OR IGNORE INTO seen_ids (job_id, first_seen_utc) VALUES (?, ?)",
                ((str(i), ts) for i in ids),
            )
            conn.commit()

    def latest_jobs(self, limit: int = 15) -> list[dict]:
        """Most recently stored jobs, newest first."""
        with _connect(self.sqlite_path) as conn:
            conn.row_factory = sqlite3.Row
            rows = conn.execute(
                """
                SELECT job_id, title, company, location, posted_date, url, stored_utc
                FROM jobs
                ORDER BY stored_utc DESC, job_id DESC
                LIMIT ?
                """,
                (int(limit),),
            ).fetchall()
        return [dict(r) for r in rows]


# ---- Public helpers --------------------------------------------------------


def init_db(sqlite_path: str) -> None:
    """
    Ensure the SQLite database and schema exist.
    Safe to call multiple times.
    """
    _ensure_dir(sqlite_path)
    with _connect(sqlite_path) as conn:
        _apply_pragmas(conn)
        _ensure_schema(conn)


def reset_db(sqlite_path: str) -> None:
    """
    Remove the DB file entirely (for pytest fixtures).
    Safe if it doesn't exist.
    """
    with contextlib.suppress(FileNotFoundError):
        os.remove(sqlite_path)


# ---- Internal utilities -----------------------------------------------------


def _ensure_dir(sqlite_path: str) -> None:
    d = os.path.dirname(os.path.abspath(sqlite_path)) or "."
    os.makedirs(d, exist_ok=True)


@contextlib.contextmanager
def _connect(sqlite_path: str):
    # isolation_level=None gives autocommit mode; transactions are explicit.
    conn = sqlite3.connect(sqlite_path, timeout=30.0, isolation_level=None)
    try:
        yield conn
    finally:
        conn.close()


def _apply_pragmas(conn: sqlite3.Connection) -> None:
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    conn.execute("PRAGMA foreign_keys=ON;")
    conn.execute("PRAGMA temp_store=MEMORY;")


def _ensure_schema(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS jobs (
          job_id TEXT PRIMARY KEY,
          title TEXT NOT NULL,
          company TEXT NOT NULL,
          location TEXT NOT NULL,
          modality TEXT NOT NULL DEFAULT '',
          posted_date TEXT NOT NULL,
          expires_date TEXT NOT NULL DEFAULT '',
          salary TEXT NOT NULL,
          url TEXT NOT NULL,
          min_years_experience INTEGER NOT NULL DEFAULT 0,
          min_degree TEXT NOT NULL DEFAULT '',
          domain TEXT NOT NULL DEFAULT '',
          description TEXT NOT NULL,
          parsed_description TEXT NOT NULL DEFAULT '',
          languages TEXT NOT NULL DEFAULT '[]',
          technologies TEXT NOT NULL DEFAULT '[]',
          is_software_engineer_related INTEGER NOT NULL DEFAULT 0,
          stored_utc TEXT NOT NULL
        );
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS seen_ids (
          job_id TEXT PRIMARY KEY,
          first_seen_utc TEXT NOT NULL
        );
        """
    )
