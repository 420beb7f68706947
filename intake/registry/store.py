"""Intake registry (sqlite): persisted sessions and the append-only lead submission log."""

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator

from intake import settings


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@contextmanager
def _conn(db_path: Path | str | None = None) -> Iterator[sqlite3.Connection]:
    path = Path(db_path or settings.DB_PATH)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


def init_db(db_path: Path | str | None = None) -> None:
    with _conn(db_path) as c:
        c.execute(
            """
            CREATE TABLE IF NOT EXISTS intake_sessions (
                session_id TEXT PRIMARY KEY,
                state_json TEXT NOT NULL,
                expires_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )
        c.execute("CREATE INDEX IF NOT EXISTS idx_intake_sessions_expires ON intake_sessions (expires_at)")
        # Append-only: one row per submission attempt, never updated
        c.execute(
            """
            CREATE TABLE IF NOT EXISTS lead_submissions (
                submission_id INTEGER PRIMARY KEY AUTOINCREMENT,
                session_id TEXT NOT NULL,
                category TEXT,
                subcategory TEXT,
                status TEXT NOT NULL,
                lead_id TEXT,
                error_code TEXT,
                message TEXT,
                http_status INTEGER,
                elapsed_ms REAL,
                payload_json TEXT,
                created_at TEXT NOT NULL
            )
            """
        )


# ---------- Sessions ----------


def save_session(
    session_id: str,
    state_json: str,
    expires_at: str,
    *,
    db_path: Path | str | None = None,
) -> None:
    with _conn(db_path) as c:
        c.execute(
            """
            INSERT INTO intake_sessions (session_id, state_json, expires_at, updated_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(session_id) DO UPDATE SET
                state_json = excluded.state_json,
                expires_at = excluded.expires_at,
                updated_at = excluded.updated_at
            """,
            (session_id, state_json, expires_at, _now_iso()),
        )


def load_session(session_id: str, *, db_path: Path | str | None = None) -> str | None:
    """Raw state JSON, or None."""
    with _conn(db_path) as c:
        row = c.execute(
            "SELECT state_json FROM intake_sessions WHERE session_id = ?",
            (session_id,),
        ).fetchone()
    return row["state_json"] if row else None


def delete_session(session_id: str, *, db_path: Path | str | None = None) -> bool:
    with _conn(db_path) as c:
        cur = c.execute("DELETE FROM intake_sessions WHERE session_id = ?", (session_id,))
        return cur.rowcount > 0


def delete_expired_sessions(now_iso: str, *, db_path: Path | str | None = None) -> int:
    with _conn(db_path) as c:
        cur = c.execute("DELETE FROM intake_sessions WHERE expires_at <= ?", (now_iso,))
        return cur.rowcount


# ---------- Lead submissions ----------


def record_submission(
    session_id: str,
    *,
    category: str | None,
    subcategory: str | None,
    status: str,
    lead_id: str | None = None,
    error_code: str | None = None,
    message: str | None = None,
    http_status: int | None = None,
    elapsed_ms: float | None = None,
    payload: dict[str, Any] | None = None,
    db_path: Path | str | None = None,
) -> int:
    with _conn(db_path) as c:
        cur = c.execute(
            """
            INSERT INTO lead_submissions (
                session_id, category, subcategory, status, lead_id, error_code,
                message, http_status, elapsed_ms, payload_json, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                session_id,
                category,
                subcategory,
                status,
                lead_id,
                error_code,
                message,
                http_status,
                elapsed_ms,
                json.dumps(payload or {}, default=str),
                _now_iso(),
            ),
        )
        return int(cur.lastrowid)


def _submission_row(row: sqlite3.Row) -> dict[str, Any]:
    out = dict(row)
    out["payload"] = json.loads(out.pop("payload_json") or "{}")
    return out


def list_submissions(
    status: str | None = None,
    limit: int = 100,
    *,
    db_path: Path | str | None = None,
) -> list[dict[str, Any]]:
    q = "SELECT * FROM lead_submissions"
    params: list[Any] = []
    if status:
        q += " WHERE status = ?"
        params.append(status)
    q += " ORDER BY submission_id DESC LIMIT ?"
    params.append(limit)
    with _conn(db_path) as c:
        rows = c.execute(q, params).fetchall()
    return [_submission_row(r) for r in rows]


def submissions_for_session(session_id: str, *, db_path: Path | str | None = None) -> list[dict[str, Any]]:
    with _conn(db_path) as c:
        rows = c.execute(
            "SELECT * FROM lead_submissions WHERE session_id = ? ORDER BY submission_id",
            (session_id,),
        ).fetchall()
    return [_submission_row(r) for r in rows]
