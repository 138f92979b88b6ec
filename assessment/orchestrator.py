"""Session state machine: creation, turn advancement and termination.

A turn is one self-contained request. ``advance_turn`` reads the session's
question set fresh each time, decides whether to terminate, replay a pending
question, or ask a new main or follow-up question, and writes at most one
question row. Numbering is guarded by the storage unique constraints, so a
double submission surfaces as ``CONFLICT`` instead of a second question.
"""
from __future__ import annotations

import sqlite3
import uuid
from datetime import timedelta
from typing import List, Optional, Sequence, Union

from config import AssessmentSettings
from content_provider import ContentProvider, GenerationFailed, GeneratedQuestion, QuestionRequest, ResumeProfile
from observability import log_event, span
from storage.questions import insert_question, list_session_questions
from storage.reports import report_exists
from storage.resumes import load_resume
from storage.sessions import end_session as store_end_session
from storage.sessions import insert_session, load_session, owner_fingerprints

from .access import load_owned_session
from .context import build_question_request
from .dedup import generate_unique
from .errors import AssessmentError, ErrorKind
from .models import (
    Clock,
    Done,
    NextTurn,
    Question,
    QuestionRecord,
    ResumeMode,
    Session,
    SessionConfig,
    SessionState,
    SessionStatus,
    utcnow,
)
from .weak_areas import weak_topics


class SessionOrchestrator:
    """Drives one session at a time through its question sequence."""

    def __init__(self, provider: ContentProvider, settings: Optional[AssessmentSettings] = None, *, clock: Clock = utcnow) -> None:
        self._provider = provider
        self._settings = settings or AssessmentSettings()
        self._clock = clock

    # ------------------------------------------------------------------ create
    def create_session(self, owner_id: str, config: SessionConfig) -> Session:
        """Persist a new in-progress session for ``owner_id``."""

        if isinstance(config.mode, ResumeMode):
            resume = load_resume(config.mode.resume_id)
            if resume is None:
                raise AssessmentError(ErrorKind.NOT_FOUND, f"resume {config.mode.resume_id} not found")
            if resume.owner_id != owner_id:
                raise AssessmentError(ErrorKind.FORBIDDEN, f"resume {config.mode.resume_id} belongs to another user")
        session = Session(id=uuid.uuid4().hex, owner_id=owner_id, config=config, started_at=self._clock())
        insert_session(session)
        log_event(
            "session_created",
            session.id,
            mode=config.mode.kind,
            difficulty=config.difficulty,
            num_questions=config.num_questions,
            time_limit_mins=config.time_limit_mins,
        )
        return session

    # ----------------------------------------------------------------- advance
    def advance_turn(
        self,
        session_id: str,
        owner_id: str,
        *,
        wants_follow_up: bool = False,
        parent_question_id: Optional[str] = None,
    ) -> Union[NextTurn, Done]:
        """Return the next question to show, or ``Done`` once the session is over."""

        if wants_follow_up and not parent_question_id:
            raise AssessmentError(ErrorKind.VALIDATION, "parent_question_id is required for a follow-up")
        session = load_owned_session(session_id, owner_id)
        if session.is_terminal:
            return _done(session, "already_ended")
        if self._time_expired(session):
            return self._terminate(session, SessionStatus.COMPLETED, "time_limit")
        records = list_session_questions(session_id)
        if wants_follow_up:
            return self._ask_follow_up(session, records, parent_question_id or "")
        return self._ask_main(session, records)

    def _ask_main(self, session: Session, records: List[QuestionRecord]) -> Union[NextTurn, Done]:
        config = session.config
        answered_main = sum(1 for record in records if record.is_main and record.answered)
        if config.num_questions is not None and answered_main >= config.num_questions:
            return self._terminate(session, SessionStatus.COMPLETED, "question_limit")

        if records and not records[-1].answered:
            pending = records[-1]
            log_event("question_replayed", session.id, index=pending.question.index, question_id=pending.question.id)
            return self._turn(session, pending.question, records, replayed=True)

        request = build_question_request(
            config,
            asked_fingerprints=self._asked_fingerprints(session, records),
            weak_topics=weak_topics(records, self._settings.weak_score_threshold),
            question_number=answered_main + 1,
            total_questions=self._total_questions(config),
            resume_profile=self._resume_profile(config),
        )
        generated, key = self._generate(session, request)
        question = self._store(session, records, generated, key, parent=None)
        return self._turn(session, question, records + [QuestionRecord(question=question)])

    def _ask_follow_up(self, session: Session, records: List[QuestionRecord], parent_question_id: str) -> NextTurn:
        parent = next((record for record in records if record.question.id == parent_question_id), None)
        if parent is None:
            raise AssessmentError(ErrorKind.NOT_FOUND, f"question {parent_question_id} not found in session {session.id}")
        if parent.question.is_follow_up:
            raise AssessmentError(ErrorKind.VALIDATION, "follow-ups cannot have follow-ups")
        if any(record.question.parent_question_id == parent_question_id for record in records):
            raise AssessmentError(ErrorKind.CONFLICT, f"question {parent_question_id} already has a follow-up")
        if any(record.is_main and record.question.index > parent.question.index for record in records):
            raise AssessmentError(ErrorKind.VALIDATION, "follow-ups are only offered for the latest main question")
        if parent.evaluation is None:
            raise AssessmentError(ErrorKind.VALIDATION, "a follow-up needs an evaluated parent question")
        if not records[-1].answered:
            raise AssessmentError(ErrorKind.VALIDATION, "answer the pending question before requesting a follow-up")

        request = build_question_request(
            session.config,
            asked_fingerprints=self._asked_fingerprints(session, records),
            weak_topics=weak_topics(records, self._settings.weak_score_threshold),
            question_number=_ordinal(records, parent.question),
            total_questions=self._total_questions(session.config),
            resume_profile=self._resume_profile(session.config),
            parent_question_text=parent.question.text,
        )
        generated, key = self._generate(session, request)
        question = self._store(session, records, generated, key, parent=parent.question)
        return self._turn(session, question, records + [QuestionRecord(question=question)])

    def _generate(self, session: Session, request: QuestionRequest) -> tuple[GeneratedQuestion, str]:
        def _once() -> GeneratedQuestion:
            with span(session.id, "next_question", follow_up=request.is_follow_up):
                try:
                    return self._provider.next_question(request)
                except GenerationFailed as exc:
                    log_event("generation_failed", session.id, error=str(exc))
                    raise AssessmentError(ErrorKind.GENERATION_FAILED, str(exc)) from exc

        def _on_duplicate(attempt: int, key: str) -> None:
            log_event("duplicate_question", session.id, attempt=attempt, fingerprint=key)

        return generate_unique(_once, request.asked_fingerprints, on_duplicate=_on_duplicate)

    def _store(
        self,
        session: Session,
        records: Sequence[QuestionRecord],
        generated: GeneratedQuestion,
        key: str,
        *,
        parent: Optional[Question],
    ) -> Question:
        question = Question(
            id=uuid.uuid4().hex,
            session_id=session.id,
            index=len(records),
            text=generated.question_text,
            topic=generated.topic,
            difficulty=generated.difficulty.upper(),
            fingerprint=key,
            expected_points=generated.expected_points,
            follow_up_triggers=generated.follow_up_triggers,
            parent_question_id=parent.id if parent is not None else None,
            is_follow_up=parent is not None,
            created_at=self._clock(),
        )
        try:
            insert_question(question)
        except sqlite3.IntegrityError as exc:
            raise AssessmentError(ErrorKind.CONFLICT, f"question {question.index} was already created for this session") from exc
        log_event(
            "question_asked",
            session.id,
            decision="follow_up" if parent is not None else "main",
            index=question.index,
            question_id=question.id,
            topic=question.topic,
        )
        return question

    def _turn(self, session: Session, question: Question, records: Sequence[QuestionRecord], *, replayed: bool = False) -> NextTurn:
        return NextTurn(
            question_id=question.id,
            question_text=question.text,
            topic=question.topic,
            difficulty=question.difficulty,
            index=question.index,
            question_number=_ordinal(records, question),
            total_questions=self._total_questions(session.config),
            is_follow_up=question.is_follow_up,
            parent_question_id=question.parent_question_id,
            replayed=replayed,
        )

    # --------------------------------------------------------------- terminate
    def end_session(self, session_id: str, owner_id: str, status: SessionStatus) -> Done:
        """Complete or abandon a session; repeating the call returns the stored outcome."""

        if not status.is_terminal:
            raise AssessmentError(ErrorKind.VALIDATION, f"cannot move a session to {status.value}")
        session = load_owned_session(session_id, owner_id)
        if session.is_terminal:
            return _done(session, "already_ended")
        reason = "abandoned" if status is SessionStatus.ABANDONED else "completed"
        return self._terminate(session, status, reason)

    def _terminate(self, session: Session, status: SessionStatus, reason: str) -> Done:
        changed = store_end_session(session.id, status, self._clock())
        current = load_session(session.id) or session
        if changed:
            log_event("session_ended", session.id, status=current.status.value, reason=reason)
        return _done(current, reason if changed else "already_ended")

    # -------------------------------------------------------------------- read
    def session_state(self, session_id: str, owner_id: str) -> SessionState:
        session = load_owned_session(session_id, owner_id)
        records = list_session_questions(session_id)
        mode = session.config.mode
        return SessionState(
            session_id=session.id,
            status=session.status,
            mode=mode.kind,
            role=getattr(mode, "role", None),
            topics=list(getattr(mode, "topics", [])),
            resume_id=getattr(mode, "resume_id", None),
            difficulty=session.config.difficulty,
            num_questions=session.config.num_questions,
            time_limit_mins=session.config.time_limit_mins,
            answered_count=sum(1 for record in records if record.is_main and record.answered),
            started_at=session.started_at,
            ended_at=session.ended_at,
            has_report=report_exists(session_id),
        )

    # ----------------------------------------------------------------- helpers
    def _time_expired(self, session: Session) -> bool:
        limit = session.config.time_limit_mins
        if limit is None:
            return False
        return session.started_at + timedelta(minutes=limit) <= self._clock()

    def _total_questions(self, config: SessionConfig) -> int:
        return config.num_questions or self._settings.default_question_target

    def _asked_fingerprints(self, session: Session, records: Sequence[QuestionRecord]) -> List[str]:
        asked = [record.question.fingerprint for record in records]
        if session.config.no_repeats:
            earlier = owner_fingerprints(
                session.owner_id,
                exclude_session_id=session.id,
                session_limit=self._settings.repeat_history_sessions,
            )
            asked = list(dict.fromkeys(earlier + asked))
        return asked

    def _resume_profile(self, config: SessionConfig) -> Optional[ResumeProfile]:
        if not isinstance(config.mode, ResumeMode):
            return None
        resume = load_resume(config.mode.resume_id)
        if resume is None:
            raise AssessmentError(ErrorKind.NOT_FOUND, f"resume {config.mode.resume_id} not found")
        return resume.profile


def _ordinal(records: Sequence[QuestionRecord], question: Question) -> int:
    """1-based main-question number; a follow-up shares its parent's number."""

    anchor = question.index
    if question.is_follow_up:
        parent = next((r.question for r in records if r.question.id == question.parent_question_id), None)
        if parent is not None:
            anchor = parent.index
    return sum(1 for record in records if record.is_main and record.question.index <= anchor)


def _done(session: Session, reason: str) -> Done:
    return Done(session_id=session.id, status=session.status, reason=reason, ended_at=session.ended_at)


__all__ = ["SessionOrchestrator"]
