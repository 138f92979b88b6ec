from assessment.models import parse_config
from assessment.orchestrator import SessionOrchestrator
from assessment.recorder import EvaluationRecorder
from assessment.report import ReportAggregator
from observability import admin_cli


def test_tail_sessions_and_show_report(provider, clock, capsys):
    orchestrator = SessionOrchestrator(provider, clock=clock)
    session = orchestrator.create_session("u1", parse_config({"mode": "ROLE", "role": "Data Engineer", "num_questions": 1}))
    turn = orchestrator.advance_turn(session.id, "u1")
    EvaluationRecorder(provider, clock=clock).record_answer(session.id, "u1", turn.question_id, "Partition by date and cluster.")
    ReportAggregator(clock=clock).build_report(session.id, "u1")

    assert admin_cli.main(["--tail-sessions", "5", "--show-report", session.id]) == 0
    out = capsys.readouterr().out
    assert session.id in out
    assert "mode=ROLE" in out
    assert "status=COMPLETED" in out
    assert "overall=7.0" in out


def test_show_report_missing_session(capsys):
    assert admin_cli.main(["--show-report", "nope"]) == 1
    assert "No report stored" in capsys.readouterr().err
