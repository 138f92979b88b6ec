"""Answer intake: validate, score through the content provider, persist atomically."""
from __future__ import annotations

import sqlite3
import uuid
from typing import Optional

from pydantic import BaseModel

from config import AssessmentSettings
from config.settings import settings as env_settings
from content_provider import ContentProvider, EvaluationRequest, GenerationFailed, RecentScore
from observability import log_event, span
from storage.answers import insert_answer_with_evaluation, recent_scores
from storage.questions import load_question_record

from .access import load_owned_session
from .errors import AssessmentError, ErrorKind
from .models import Answer, Clock, Evaluation, QuestionRecord, utcnow
from .policy import FollowUpPolicy, low_confidence_policy, offers_follow_up


class RecordedAnswer(BaseModel):  # Stored evaluation plus the follow-up offer for the caller
    question_id: str
    answer_id: str
    evaluation: Evaluation
    follow_up_offered: bool


class EvaluationRecorder:
    """Records exactly one answer per question.

    The provider call happens before anything is written; the answer and its
    evaluation are then inserted in a single transaction. A lost race against
    a concurrent submission surfaces as ``CONFLICT`` with nothing written.
    """

    def __init__(
        self,
        provider: ContentProvider,
        settings: Optional[AssessmentSettings] = None,
        *,
        clock: Clock = utcnow,
        policy: FollowUpPolicy = low_confidence_policy,
    ) -> None:
        self._provider = provider
        self._settings = settings or AssessmentSettings()
        self._clock = clock
        self._policy = policy

    def record_answer(self, session_id: str, owner_id: str, question_id: str, answer_text: str) -> RecordedAnswer:
        text = _clean_answer(answer_text)
        record = load_question_record(question_id)
        if record is None:
            raise AssessmentError(ErrorKind.NOT_FOUND, f"question {question_id} not found")
        session = load_owned_session(session_id, owner_id)
        if record.question.session_id != session.id:
            raise AssessmentError(ErrorKind.NOT_FOUND, f"question {question_id} not found in session {session_id}")
        if session.is_terminal:
            raise AssessmentError(ErrorKind.VALIDATION, f"session {session_id} is {session.status.value}")
        if record.answered:
            raise AssessmentError(ErrorKind.CONFLICT, f"question {question_id} was already answered")

        question = record.question
        window = self._settings.recent_scores_window
        recent = [RecentScore(topic=topic, score=score) for topic, score in reversed(recent_scores(session_id, window))]
        request = EvaluationRequest(
            question_text=question.text,
            topic=question.topic,
            difficulty=question.difficulty.lower(),
            expected_points=question.expected_points,
            answer_text=text,
            recent_scores=recent,
        )
        with span(session_id, "evaluate_answer", question_id=question_id):
            try:
                result = self._provider.evaluate_answer(request)
            except GenerationFailed as exc:
                log_event("generation_failed", session_id, question_id=question_id, error=str(exc))
                raise AssessmentError(ErrorKind.GENERATION_FAILED, str(exc)) from exc

        now = self._clock()
        answer = Answer(id=uuid.uuid4().hex, question_id=question_id, text=text, submitted_at=now)
        evaluation = Evaluation(
            id=uuid.uuid4().hex,
            answer_id=answer.id,
            score=result.score,
            strengths=result.strengths,
            missing_points=result.missing_points,
            feedback=result.feedback,
            next_focus_topic=result.next_focus_topic,
            confidence=result.confidence,
            created_at=now,
        )
        try:
            insert_answer_with_evaluation(answer, evaluation)
        except sqlite3.IntegrityError as exc:
            raise AssessmentError(ErrorKind.CONFLICT, f"question {question_id} was already answered") from exc

        offered = offers_follow_up(
            QuestionRecord(question=question, answer=answer, evaluation=evaluation),
            policy=self._policy,
        )
        log_event(
            "answer_recorded",
            session_id,
            index=question.index,
            question_id=question_id,
            score=evaluation.score,
            confidence=evaluation.confidence,
            decision="offer_follow_up" if offered else "continue",
        )
        return RecordedAnswer(question_id=question_id, answer_id=answer.id, evaluation=evaluation, follow_up_offered=offered)


def _clean_answer(answer_text: str) -> str:
    text = (answer_text or "").strip()
    if not text:
        raise AssessmentError(ErrorKind.VALIDATION, "answer text is required")
    if len(text) > env_settings.ANSWER_MAX_CHARS:
        raise AssessmentError(ErrorKind.VALIDATION, f"answer exceeds {env_settings.ANSWER_MAX_CHARS} characters")
    return text


__all__ = ["EvaluationRecorder", "RecordedAnswer"]
