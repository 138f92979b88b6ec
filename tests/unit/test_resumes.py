import pytest

from assessment.errors import AssessmentError, ErrorKind
from assessment.models import parse_config
from assessment.orchestrator import SessionOrchestrator
from config.settings import settings
from resumes import clean_resume_text, ingest_resume
from storage.resumes import load_resume

RESUME = (
    "Ada Lovelace\tBackend Engineer\n\n"
    "Built a Go service that processes 2M events per day with PostgreSQL window functions. "
    "Led the migration to Kafka and cut p99 latency by 40 percent. • Mentored three engineers."
)


def test_clean_resume_text_collapses_whitespace_and_strips_non_printable():
    assert clean_resume_text("  Go \t and\n\nSQL café•  ") == "Go and SQL caf"


def test_ingest_stores_profile_and_capped_text(provider, monkeypatch):
    monkeypatch.setattr(settings, "RESUME_STORED_CHARS", 120)
    ingested = ingest_resume("user-1", "ada.pdf", RESUME * 2, provider=provider)
    stored = load_resume(ingested.resume_id)
    assert stored.owner_id == "user-1"
    assert stored.file_name == "ada.pdf"
    assert len(stored.raw_text) == 120
    assert stored.profile.focus_topics == ["SQL window functions", "Go concurrency"]
    assert "•" not in provider.resume_texts[0]


def test_short_resume_is_rejected(provider):
    with pytest.raises(AssessmentError) as excinfo:
        ingest_resume("user-1", "tiny.pdf", "Too short to profile.", provider=provider)
    assert excinfo.value.kind is ErrorKind.VALIDATION
    assert provider.resume_texts == []


def test_resume_mode_session_uses_profile(provider, clock):
    ingested = ingest_resume("user-1", "ada.pdf", RESUME, provider=provider)
    orchestrator = SessionOrchestrator(provider, clock=clock)

    with pytest.raises(AssessmentError) as excinfo:
        orchestrator.create_session("user-2", parse_config({"mode": "RESUME", "resume_id": ingested.resume_id, "num_questions": 2}))
    assert excinfo.value.kind is ErrorKind.FORBIDDEN

    session = orchestrator.create_session(
        "user-1", parse_config({"mode": "RESUME", "resume_id": ingested.resume_id, "num_questions": 2})
    )
    orchestrator.advance_turn(session.id, "user-1")
    context = provider.question_requests[-1].mode_context
    assert context.startswith("CANDIDATE PROFILE")
    assert "SQL window functions" in context
