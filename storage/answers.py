"""Persistence helpers for answers and their evaluations."""
from __future__ import annotations

import json
import sqlite3
from typing import List, Tuple

from assessment.models import Answer, Evaluation

from .sqlite import get_conn


def insert_answer_with_evaluation(answer: Answer, evaluation: Evaluation) -> None:
    """Insert an answer and its evaluation in one transaction.

    Either both rows become visible or neither does. A second answer for the
    same question raises ``sqlite3.IntegrityError``.
    """

    if evaluation.answer_id != answer.id:
        raise ValueError("evaluation must reference the answer being inserted")
    with get_conn() as conn:
        cur = conn.cursor()
        cur.execute(
            "INSERT INTO answers (id, question_id, answer_text, submitted_at) VALUES (?, ?, ?, ?)",
            (answer.id, answer.question_id, answer.text, answer.submitted_at.isoformat()),
        )
        _insert_evaluation(cur, evaluation)


def _insert_evaluation(cur: sqlite3.Cursor, evaluation: Evaluation) -> None:
    cur.execute(
        """INSERT INTO evaluations
           (id, answer_id, score, strengths_json, missing_points_json, feedback,
            next_focus_topic, confidence, created_at)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            evaluation.id,
            evaluation.answer_id,
            evaluation.score,
            json.dumps(evaluation.strengths),
            json.dumps(evaluation.missing_points),
            evaluation.feedback,
            evaluation.next_focus_topic,
            evaluation.confidence,
            evaluation.created_at.isoformat(),
        ),
    )


def recent_scores(session_id: str, limit: int) -> List[Tuple[str, int]]:
    """Most recent (topic, score) pairs of a session, newest first."""

    if limit <= 0:
        return []
    with get_conn() as conn:
        rows = conn.execute(
            """
            SELECT q.topic, e.score
            FROM evaluations e
            JOIN answers a ON a.id = e.answer_id
            JOIN questions q ON q.id = a.question_id
            WHERE q.session_id = ?
            ORDER BY e.created_at DESC, q.seq_index DESC
            LIMIT ?
            """,
            (session_id, limit),
        ).fetchall()
    return [(row["topic"], int(row["score"])) for row in rows]
