"""Persistence helpers for questions and their joined answers/evaluations."""
from __future__ import annotations

import json
import sqlite3
from typing import List, Optional

from assessment.models import Answer, Evaluation, Question, QuestionRecord

from .sqlite import get_conn

_JOINED = """
SELECT q.id, q.session_id, q.seq_index, q.question_text, q.fingerprint, q.topic, q.difficulty,
       q.expected_points_json, q.follow_up_triggers_json, q.parent_question_id, q.is_follow_up,
       q.created_at,
       a.id AS answer_id, a.answer_text, a.submitted_at,
       e.id AS evaluation_id, e.score, e.strengths_json, e.missing_points_json, e.feedback,
       e.next_focus_topic, e.confidence, e.created_at AS evaluated_at
FROM questions q
LEFT JOIN answers a ON a.question_id = q.id
LEFT JOIN evaluations e ON e.answer_id = a.id
"""


def insert_question(question: Question) -> None:
    """Insert a question.

    Raises ``sqlite3.IntegrityError`` when the sequence index, fingerprint or
    follow-up parent is already taken in the session.
    """

    with get_conn() as conn:
        conn.execute(
            """INSERT INTO questions
               (id, session_id, seq_index, question_text, fingerprint, topic, difficulty,
                expected_points_json, follow_up_triggers_json, parent_question_id, is_follow_up, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                question.id,
                question.session_id,
                question.index,
                question.text,
                question.fingerprint,
                question.topic,
                question.difficulty,
                json.dumps(question.expected_points),
                json.dumps(question.follow_up_triggers),
                question.parent_question_id,
                int(question.is_follow_up),
                question.created_at.isoformat(),
            ),
        )


def list_session_questions(session_id: str) -> List[QuestionRecord]:
    """All questions of a session in sequence order, with answers and evaluations."""

    with get_conn() as conn:
        rows = conn.execute(_JOINED + " WHERE q.session_id = ? ORDER BY q.seq_index ASC", (session_id,)).fetchall()
    return [_record_from_row(row) for row in rows]


def load_question_record(question_id: str) -> Optional[QuestionRecord]:
    """Return one question with its answer/evaluation, or ``None``."""

    with get_conn() as conn:
        row = conn.execute(_JOINED + " WHERE q.id = ?", (question_id,)).fetchone()
    return _record_from_row(row) if row is not None else None


def _record_from_row(row: sqlite3.Row) -> QuestionRecord:
    question = Question(
        id=row["id"],
        session_id=row["session_id"],
        index=row["seq_index"],
        text=row["question_text"],
        fingerprint=row["fingerprint"],
        topic=row["topic"],
        difficulty=row["difficulty"],
        expected_points=json.loads(row["expected_points_json"]),
        follow_up_triggers=json.loads(row["follow_up_triggers_json"]),
        parent_question_id=row["parent_question_id"],
        is_follow_up=bool(row["is_follow_up"]),
        created_at=row["created_at"],
    )
    answer = None
    if row["answer_id"] is not None:
        answer = Answer(
            id=row["answer_id"],
            question_id=question.id,
            text=row["answer_text"],
            submitted_at=row["submitted_at"],
        )
    evaluation = None
    if row["evaluation_id"] is not None:
        evaluation = Evaluation(
            id=row["evaluation_id"],
            answer_id=row["answer_id"],
            score=row["score"],
            strengths=json.loads(row["strengths_json"]),
            missing_points=json.loads(row["missing_points_json"]),
            feedback=row["feedback"],
            next_focus_topic=row["next_focus_topic"],
            confidence=row["confidence"],
            created_at=row["evaluated_at"],
        )
    return QuestionRecord(question=question, answer=answer, evaluation=evaluation)
