"""Persistence helpers for session reports."""
from __future__ import annotations

import json
from datetime import datetime
from typing import Optional

from assessment.models import Report, SessionStatus, TopicScore

from .sqlite import get_conn


def insert_report_and_complete(report: Report, *, ended_at: datetime) -> None:
    """Store the report and close the session in one transaction.

    The session is marked ``COMPLETED`` only while it is still in progress; an
    abandoned or already completed session keeps its status and ``ended_at``.
    A second report for the same session raises ``sqlite3.IntegrityError``.
    """

    with get_conn() as conn:
        conn.execute(
            """INSERT INTO reports
               (id, session_id, overall_score, topic_scores_json, strengths_json,
                weaknesses_json, improvement_tips_json, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                report.id,
                report.session_id,
                report.overall_score,
                json.dumps([score.model_dump() for score in report.topic_scores]),
                json.dumps(report.strengths),
                json.dumps(report.weaknesses),
                json.dumps(report.improvement_tips),
                report.created_at.isoformat(),
            ),
        )
        conn.execute(
            "UPDATE sessions SET status = ?, ended_at = ? WHERE id = ? AND status = ?",
            (
                SessionStatus.COMPLETED.value,
                ended_at.isoformat(),
                report.session_id,
                SessionStatus.IN_PROGRESS.value,
            ),
        )


def load_report(session_id: str) -> Optional[Report]:
    """Return the stored report of a session, or ``None``."""

    with get_conn() as conn:
        row = conn.execute(
            """SELECT id, session_id, overall_score, topic_scores_json, strengths_json,
                      weaknesses_json, improvement_tips_json, created_at
               FROM reports WHERE session_id = ?""",
            (session_id,),
        ).fetchone()
    if row is None:
        return None
    return Report(
        id=row["id"],
        session_id=row["session_id"],
        overall_score=row["overall_score"],
        topic_scores=[TopicScore(**item) for item in json.loads(row["topic_scores_json"])],
        strengths=json.loads(row["strengths_json"]),
        weaknesses=json.loads(row["weaknesses_json"]),
        improvement_tips=json.loads(row["improvement_tips_json"]),
        created_at=row["created_at"],
    )


def report_exists(session_id: str) -> bool:
    with get_conn() as conn:
        row = conn.execute("SELECT 1 FROM reports WHERE session_id = ?", (session_id,)).fetchone()
    return row is not None
