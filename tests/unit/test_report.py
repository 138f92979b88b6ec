from datetime import datetime, timezone

import pytest

from assessment.errors import AssessmentError, ErrorKind
from assessment.models import Done, Evaluation, Question, QuestionRecord, SessionStatus, parse_config
from assessment.orchestrator import SessionOrchestrator
from assessment.recorder import EvaluationRecorder
from assessment.report import GENERIC_TIP, LIST_CAP, ReportAggregator, aggregate, build_transcript
from conftest import make_evaluation, make_question
from storage.questions import list_session_questions
from storage.sessions import load_session

OWNER = "user-1"
ANSWER = "An answer with enough substance to be scored on its merits."
NOW = datetime(2024, 5, 1, tzinfo=timezone.utc)


def _record(index, topic, score, *, strengths=(), missing=(), parent=None):
    question = Question(
        id=f"q{index}",
        session_id="s1",
        index=index,
        text=f"Question {index}",
        topic=topic,
        difficulty="EASY",
        fingerprint=f"question {index}",
        parent_question_id=parent,
        is_follow_up=parent is not None,
        created_at=NOW,
    )
    evaluation = Evaluation(
        id=f"e{index}",
        answer_id=f"a{index}",
        score=score,
        strengths=list(strengths),
        missing_points=list(missing),
        feedback="Feedback long enough",
        confidence="medium",
        created_at=NOW,
    )
    return QuestionRecord(question=question, evaluation=evaluation)


def _play(provider, clock, topics, scores):
    orchestrator = SessionOrchestrator(provider, clock=clock)
    recorder = EvaluationRecorder(provider, clock=clock)
    session = orchestrator.create_session(
        OWNER, parse_config({"mode": "TOPICS", "topics": sorted(set(topics)), "num_questions": len(topics)})
    )
    for number, (topic, score) in enumerate(zip(topics, scores), start=1):
        provider.questions.append(make_question(f"Question {number} on {topic}: explain the trade-offs.", topic=topic))
        provider.evaluations.append(
            make_evaluation(score, strengths=[f"clear on {topic}"], missing=[f"depth on {topic}"])
        )
        turn = orchestrator.advance_turn(session.id, OWNER)
        recorder.record_answer(session.id, OWNER, turn.question_id, ANSWER)
    return orchestrator, session


def test_end_to_end_report_scores_and_ordering(provider, clock):
    orchestrator, session = _play(provider, clock, ["A", "B", "B"], [8, 5, 3])
    done = orchestrator.advance_turn(session.id, OWNER)
    assert isinstance(done, Done) and done.status is SessionStatus.COMPLETED

    report, transcript = ReportAggregator(clock=clock).fetch_report(session.id, OWNER)
    assert report.overall_score == 5.3
    assert [(item.topic, item.avg_score, item.question_count) for item in report.topic_scores] == [
        ("B", 4.0, 2),
        ("A", 8.0, 1),
    ]
    assert len(report.improvement_tips) == 1
    assert "B" in report.improvement_tips[0]
    assert report.strengths == ["clear on A", "clear on B"]
    assert report.weaknesses == ["depth on A", "depth on B"]
    assert [entry.question.index for entry in transcript] == [0, 1, 2]


def test_build_report_is_idempotent(provider, clock):
    _, session = _play(provider, clock, ["A", "B", "B"], [8, 5, 3])
    aggregator = ReportAggregator(clock=clock)
    first = aggregator.build_report(session.id, OWNER)
    clock.advance(hours=1)
    second = aggregator.build_report(session.id, OWNER)
    assert first.model_dump_json() == second.model_dump_json()


def test_report_completes_an_in_progress_session_once(provider, clock):
    _, session = _play(provider, clock, ["A"], [9])
    assert load_session(session.id).status is SessionStatus.IN_PROGRESS
    report = ReportAggregator(clock=clock).build_report(session.id, OWNER)
    stored = load_session(session.id)
    assert stored.status is SessionStatus.COMPLETED
    assert stored.ended_at == clock.now
    assert report.improvement_tips == [GENERIC_TIP]


def test_abandoned_session_keeps_its_status(provider, clock):
    orchestrator, session = _play(provider, clock, ["A"], [9])
    orchestrator.end_session(session.id, OWNER, SessionStatus.ABANDONED)
    ended_at = load_session(session.id).ended_at
    clock.advance(minutes=10)
    ReportAggregator(clock=clock).build_report(session.id, OWNER)
    stored = load_session(session.id)
    assert stored.status is SessionStatus.ABANDONED
    assert stored.ended_at == ended_at


def test_no_scorable_questions(provider, clock):
    orchestrator = SessionOrchestrator(provider, clock=clock)
    session = orchestrator.create_session(OWNER, parse_config({"mode": "ROLE", "role": "SRE", "num_questions": 2}))
    orchestrator.advance_turn(session.id, OWNER)
    with pytest.raises(AssessmentError) as excinfo:
        ReportAggregator(clock=clock).build_report(session.id, OWNER)
    assert excinfo.value.kind is ErrorKind.NO_SCORABLE_QUESTIONS
    assert load_session(session.id).status is SessionStatus.IN_PROGRESS
    assert list_session_questions(session.id)[0].answer is None


def test_aggregate_rounds_half_up_and_ignores_follow_ups():
    scores = [7] * 19 + [8]
    records = [_record(index, "Go", score) for index, score in enumerate(scores)]
    records.append(_record(20, "Go", 0, parent="q0"))
    report = aggregate("s1", records, report_id="r1", created_at=NOW)
    assert report.overall_score == 7.1
    assert report.topic_scores[0].question_count == 20


def test_aggregate_dedupes_and_caps_lists():
    records = [
        _record(index, "SQL", 6, strengths=[f"s{index % 4}", f"s{index}"], missing=["joins"])
        for index in range(8)
    ]
    report = aggregate("s1", records, report_id="r1", created_at=NOW)
    assert len(report.strengths) == LIST_CAP
    assert report.strengths[:3] == ["s0", "s1", "s2"]
    assert report.weaknesses == ["joins"]
    assert report.improvement_tips == [GENERIC_TIP]


def test_transcript_pairs_follow_ups_with_parents():
    records = [
        _record(0, "SQL", 3),
        _record(1, "SQL", 6, parent="q0"),
        _record(2, "Go", 8),
    ]
    transcript = build_transcript(records)
    assert [entry.question.id for entry in transcript] == ["q0", "q2"]
    assert transcript[0].follow_up.question.id == "q1"
    assert transcript[0].follow_up.evaluation.score == 6
    assert transcript[1].follow_up is None
