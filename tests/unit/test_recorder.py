import sqlite3
import uuid

import pytest

import storage.answers as answers_store
from assessment.errors import AssessmentError, ErrorKind
from assessment.models import Answer, Evaluation, SessionStatus, parse_config
from assessment.orchestrator import SessionOrchestrator
from assessment.recorder import EvaluationRecorder
from config.settings import settings
from conftest import ScriptedProvider, make_evaluation
from content_provider import GenerationFailed
from storage.questions import load_question_record

OWNER = "user-1"
ANSWER = "Indexes narrow the scan, and the planner picks them from statistics."


def _asked(provider, clock, **overrides):
    orchestrator = SessionOrchestrator(provider, clock=clock)
    fields = {"mode": "ROLE", "role": "Backend Engineer", "num_questions": 5}
    fields.update(overrides)
    session = orchestrator.create_session(OWNER, parse_config(fields))
    turn = orchestrator.advance_turn(session.id, OWNER)
    return orchestrator, session, turn


def test_second_answer_conflicts_without_writing(provider, clock):
    _, session, turn = _asked(provider, clock)
    recorder = EvaluationRecorder(provider, clock=clock)
    first = recorder.record_answer(session.id, OWNER, turn.question_id, ANSWER)

    with pytest.raises(AssessmentError) as excinfo:
        recorder.record_answer(session.id, OWNER, turn.question_id, "A different answer entirely.")
    assert excinfo.value.kind is ErrorKind.CONFLICT
    assert len(provider.evaluation_requests) == 1

    stored = load_question_record(turn.question_id)
    assert stored.answer.id == first.answer_id
    assert stored.answer.text == ANSWER
    assert stored.evaluation.score == first.evaluation.score


def test_answer_and_evaluation_are_written_together(provider, clock, monkeypatch):
    _, session, turn = _asked(provider, clock)
    recorder = EvaluationRecorder(provider, clock=clock)

    def broken(cur, evaluation):
        raise sqlite3.OperationalError("disk I/O error")

    original = answers_store._insert_evaluation
    monkeypatch.setattr(answers_store, "_insert_evaluation", broken)
    with pytest.raises(sqlite3.OperationalError):
        recorder.record_answer(session.id, OWNER, turn.question_id, ANSWER)
    assert load_question_record(turn.question_id).answer is None

    monkeypatch.setattr(answers_store, "_insert_evaluation", original)
    recorded = recorder.record_answer(session.id, OWNER, turn.question_id, ANSWER)
    assert load_question_record(turn.question_id).evaluation.id == recorded.evaluation.id


def test_concurrent_submission_surfaces_conflict(clock):
    class RacingProvider(ScriptedProvider):
        def evaluate_answer(self, request):
            result = super().evaluate_answer(request)
            answer = Answer(id=uuid.uuid4().hex, question_id=self.target, text="first", submitted_at=clock())
            answers_store.insert_answer_with_evaluation(
                answer,
                Evaluation(
                    id=uuid.uuid4().hex,
                    answer_id=answer.id,
                    score=5,
                    feedback="Won the race to store.",
                    confidence="medium",
                    created_at=clock(),
                ),
            )
            return result

    provider = RacingProvider()
    _, session, turn = _asked(provider, clock)
    provider.target = turn.question_id
    with pytest.raises(AssessmentError) as excinfo:
        EvaluationRecorder(provider, clock=clock).record_answer(session.id, OWNER, turn.question_id, ANSWER)
    assert excinfo.value.kind is ErrorKind.CONFLICT
    assert load_question_record(turn.question_id).answer.text == "first"


def test_answer_validation_and_ownership(provider, clock):
    orchestrator, session, turn = _asked(provider, clock)
    recorder = EvaluationRecorder(provider, clock=clock)
    _, _, other_turn = _asked(provider, clock)

    cases = [
        ((session.id, OWNER, turn.question_id, "   "), ErrorKind.VALIDATION),
        ((session.id, OWNER, turn.question_id, "x" * (settings.ANSWER_MAX_CHARS + 1)), ErrorKind.VALIDATION),
        ((session.id, OWNER, "missing", ANSWER), ErrorKind.NOT_FOUND),
        ((session.id, OWNER, other_turn.question_id, ANSWER), ErrorKind.NOT_FOUND),
        ((session.id, "intruder", turn.question_id, ANSWER), ErrorKind.FORBIDDEN),
    ]
    for args, kind in cases:
        with pytest.raises(AssessmentError) as excinfo:
            recorder.record_answer(*args)
        assert excinfo.value.kind is kind

    orchestrator.end_session(session.id, OWNER, SessionStatus.ABANDONED)
    with pytest.raises(AssessmentError) as excinfo:
        recorder.record_answer(session.id, OWNER, turn.question_id, ANSWER)
    assert excinfo.value.kind is ErrorKind.VALIDATION
    assert provider.evaluation_requests == []


def test_provider_failure_writes_nothing(provider, clock):
    _, session, turn = _asked(provider, clock)
    provider.evaluations.append(GenerationFailed("model unavailable"))
    with pytest.raises(AssessmentError) as excinfo:
        EvaluationRecorder(provider, clock=clock).record_answer(session.id, OWNER, turn.question_id, ANSWER)
    assert excinfo.value.kind is ErrorKind.GENERATION_FAILED
    assert load_question_record(turn.question_id).answer is None


def test_evaluation_request_carries_recent_scores(provider, clock):
    orchestrator, session, turn = _asked(provider, clock)
    recorder = EvaluationRecorder(provider, clock=clock)
    for score in (9, 4, 6, 8):
        provider.evaluations.append(make_evaluation(score))
        recorder.record_answer(session.id, OWNER, turn.question_id, f"  {ANSWER}  ")
        clock.advance(minutes=1)
        turn = orchestrator.advance_turn(session.id, OWNER)

    recorder.record_answer(session.id, OWNER, turn.question_id, ANSWER)
    request = provider.evaluation_requests[-1]
    assert [item.score for item in request.recent_scores] == [4, 6, 8]
    assert provider.evaluation_requests[0].answer_text == ANSWER
    assert provider.evaluation_requests[0].recent_scores == []
    assert request.difficulty == "medium"
