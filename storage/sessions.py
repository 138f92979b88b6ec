"""Persistence helpers for assessment sessions."""
from __future__ import annotations

import json
import sqlite3
from datetime import datetime
from typing import List, Optional

from assessment.models import ResumeMode, RoleMode, Session, SessionConfig, SessionStatus, TopicsMode

from .sqlite import get_conn

_COLUMNS = """id, owner_id, mode, role, topics_json, resume_id, difficulty, num_questions,
              time_limit_mins, no_repeats, focus_weak_areas, status, started_at, ended_at"""


def insert_session(session: Session) -> None:
    """Insert a new session header."""

    cfg = session.config
    mode = cfg.mode
    with get_conn() as conn:
        conn.execute(
            f"INSERT INTO sessions ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                session.id,
                session.owner_id,
                mode.kind,
                mode.role if isinstance(mode, RoleMode) else None,
                json.dumps(mode.topics if isinstance(mode, TopicsMode) else []),
                mode.resume_id if isinstance(mode, ResumeMode) else None,
                cfg.difficulty,
                cfg.num_questions,
                cfg.time_limit_mins,
                int(cfg.no_repeats),
                int(cfg.focus_weak_areas),
                session.status.value,
                session.started_at.isoformat(),
                session.ended_at.isoformat() if session.ended_at else None,
            ),
        )


def load_session(session_id: str) -> Optional[Session]:
    """Return the session header or ``None`` when it does not exist."""

    with get_conn() as conn:
        row = conn.execute(f"SELECT {_COLUMNS} FROM sessions WHERE id = ?", (session_id,)).fetchone()
    return _session_from_row(row) if row is not None else None


def end_session(session_id: str, status: SessionStatus, ended_at: datetime) -> bool:
    """Move an in-progress session to ``status``.

    The update only applies while the session is still ``IN_PROGRESS``, so a
    terminal session keeps its original status and ``ended_at``. Returns whether
    this call performed the transition.
    """

    if not status.is_terminal:
        raise ValueError("sessions can only be ended with a terminal status")
    with get_conn() as conn:
        cur = conn.execute(
            "UPDATE sessions SET status = ?, ended_at = ? WHERE id = ? AND status = ?",
            (status.value, ended_at.isoformat(), session_id, SessionStatus.IN_PROGRESS.value),
        )
        return cur.rowcount == 1


def list_sessions(limit: int = 20, owner_id: Optional[str] = None) -> List[Session]:
    """List the most recently started sessions, optionally for one owner."""

    query = f"SELECT {_COLUMNS} FROM sessions"
    params: tuple = ()
    if owner_id is not None:
        query += " WHERE owner_id = ?"
        params = (owner_id,)
    query += " ORDER BY started_at DESC, id DESC LIMIT ?"
    with get_conn() as conn:
        rows = conn.execute(query, params + (limit,)).fetchall()
    return [_session_from_row(row) for row in rows]


def owner_fingerprints(owner_id: str, *, exclude_session_id: str, session_limit: int) -> List[str]:
    """Fingerprints asked in the owner's ``session_limit`` most recent other sessions."""

    with get_conn() as conn:
        rows = conn.execute(
            """
            WITH recent AS (
                SELECT id, started_at FROM sessions
                WHERE owner_id = ? AND id <> ?
                ORDER BY started_at DESC, id DESC
                LIMIT ?
            )
            SELECT q.fingerprint
            FROM questions q
            JOIN recent s ON s.id = q.session_id
            ORDER BY s.started_at ASC, q.seq_index ASC
            """,
            (owner_id, exclude_session_id, session_limit),
        ).fetchall()
    return [row["fingerprint"] for row in rows]


def _session_from_row(row: sqlite3.Row) -> Session:
    kind = row["mode"]
    if kind == "ROLE":
        mode = {"kind": kind, "role": row["role"]}
    elif kind == "TOPICS":
        mode = {"kind": kind, "topics": json.loads(row["topics_json"])}
    else:
        mode = {"kind": kind, "resume_id": row["resume_id"]}
    config = SessionConfig(
        mode=mode,
        difficulty=row["difficulty"],
        num_questions=row["num_questions"],
        time_limit_mins=row["time_limit_mins"],
        no_repeats=bool(row["no_repeats"]),
        focus_weak_areas=bool(row["focus_weak_areas"]),
    )
    return Session(
        id=row["id"],
        owner_id=row["owner_id"],
        config=config,
        status=SessionStatus(row["status"]),
        started_at=row["started_at"],
        ended_at=row["ended_at"],
    )
