"""Session report aggregation and transcript projection.

``aggregate`` is a pure function over a session's question records. The
report is stored once; later calls return the stored copy, never a recompute.
"""
from __future__ import annotations

import sqlite3
import uuid
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Sequence, Tuple

from observability import log_event
from storage.questions import list_session_questions
from storage.reports import insert_report_and_complete, load_report

from .access import load_owned_session
from .errors import AssessmentError, ErrorKind
from .models import Clock, FollowUpEntry, QuestionRecord, Report, TopicScore, TranscriptEntry, utcnow
from .weak_areas import WEAK_SCORE_THRESHOLD, scored_main

LIST_CAP = 6
TIP_TEMPLATE = (
    "Strengthen {topic}: Review core concepts and practice applying them in real scenarios. "
    "Focus on the gaps identified in your answers."
)
GENERIC_TIP = (
    "Solid performance across every topic. Keep practicing at a higher difficulty "
    "to push your depth further."
)


def _round1(value: Decimal) -> float:
    return float(value.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def _mean(scores: Sequence[int]) -> float:
    return _round1(Decimal(sum(scores)) / Decimal(len(scores)))


def _first_seen(items: Iterable[str], cap: int = LIST_CAP) -> List[str]:
    return list(dict.fromkeys(items))[:cap]


def aggregate(
    session_id: str,
    records: Sequence[QuestionRecord],
    *,
    report_id: str,
    created_at: datetime,
    threshold: float = WEAK_SCORE_THRESHOLD,
) -> Report:
    """Build the report content from evaluated main questions."""

    scored = scored_main(records)
    if not scored:
        raise AssessmentError(ErrorKind.NO_SCORABLE_QUESTIONS, f"session {session_id} has no evaluated questions")

    buckets: Dict[str, List[int]] = {}
    for record in scored:
        buckets.setdefault(record.question.topic, []).append(record.evaluation.score)  # type: ignore[union-attr]
    topic_scores = sorted(
        (TopicScore(topic=topic, avg_score=_mean(scores), question_count=len(scores)) for topic, scores in buckets.items()),
        key=lambda item: item.avg_score,
    )

    tips = [TIP_TEMPLATE.format(topic=item.topic) for item in topic_scores if item.avg_score < threshold]
    return Report(
        id=report_id,
        session_id=session_id,
        overall_score=_mean([record.evaluation.score for record in scored]),  # type: ignore[union-attr]
        topic_scores=topic_scores,
        strengths=_first_seen(item for record in scored for item in record.evaluation.strengths),  # type: ignore[union-attr]
        weaknesses=_first_seen(item for record in scored for item in record.evaluation.missing_points),  # type: ignore[union-attr]
        improvement_tips=tips or [GENERIC_TIP],
        created_at=created_at,
    )


def build_transcript(records: Sequence[QuestionRecord]) -> List[TranscriptEntry]:
    """Pair each main question with its follow-up, in sequence order."""

    follow_ups: Dict[str, QuestionRecord] = {}
    for record in records:
        parent_id = record.question.parent_question_id
        if record.question.is_follow_up and parent_id and parent_id not in follow_ups:
            follow_ups[parent_id] = record
    entries: List[TranscriptEntry] = []
    for record in sorted(records, key=lambda item: item.question.index):
        if not record.is_main:
            continue
        child = follow_ups.get(record.question.id)
        entries.append(
            TranscriptEntry(
                question=record.question,
                answer=record.answer,
                evaluation=record.evaluation,
                follow_up=(
                    FollowUpEntry(question=child.question, answer=child.answer, evaluation=child.evaluation)
                    if child is not None
                    else None
                ),
            )
        )
    return entries


class ReportAggregator:
    """Builds a session's report at most once and serves the stored copy afterwards."""

    def __init__(self, *, clock: Clock = utcnow, threshold: float = WEAK_SCORE_THRESHOLD) -> None:
        self._clock = clock
        self._threshold = threshold

    def build_report(self, session_id: str, owner_id: str) -> Report:
        session = load_owned_session(session_id, owner_id)
        existing = load_report(session_id)
        if existing is not None:
            return existing
        now = self._clock()
        report = aggregate(
            session_id,
            list_session_questions(session_id),
            report_id=uuid.uuid4().hex,
            created_at=now,
            threshold=self._threshold,
        )
        try:
            insert_report_and_complete(report, ended_at=now)
        except sqlite3.IntegrityError:
            stored = load_report(session_id)
            if stored is None:
                raise
            return stored
        log_event(
            "report_built",
            session_id,
            status=session.status.value,
            score=report.overall_score,
            topics=len(report.topic_scores),
        )
        stored = load_report(session_id)
        return stored if stored is not None else report

    def fetch_report(self, session_id: str, owner_id: str) -> Tuple[Report, List[TranscriptEntry]]:
        """Report plus transcript; builds the report on first use."""

        report = self.build_report(session_id, owner_id)
        return report, build_transcript(list_session_questions(session_id))


__all__ = [
    "GENERIC_TIP",
    "LIST_CAP",
    "ReportAggregator",
    "TIP_TEMPLATE",
    "aggregate",
    "build_transcript",
]
