import os
import sys
import tempfile
from collections import deque
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

os.environ.setdefault("ENABLE_FILE_LOGS", "0")

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from storage.migrate import migrate
from config.settings import settings
from content_provider import AnswerEvaluation, GeneratedQuestion, ResumeProfile, derive_confidence


def make_question(text: str, topic: str = "SQL", difficulty: str = "medium") -> GeneratedQuestion:
    return GeneratedQuestion(
        question_text=text,
        topic=topic,
        difficulty=difficulty,
        expected_points=["indexes", "query plans"],
        follow_up_triggers=["it depends"],
        rationale="probe depth",
    )


def make_evaluation(score: int, *, strengths=(), missing=(), confidence=None) -> AnswerEvaluation:
    return AnswerEvaluation(
        score=score,
        strengths=list(strengths),
        missing_points=list(missing),
        feedback="Feedback that is long enough.",
        next_focus_topic=None,
        confidence=confidence or derive_confidence(score, "x" * 80),
    )


class ScriptedProvider:
    """Content provider returning queued outputs, falling back to unique defaults."""

    def __init__(self):
        self.questions = deque()
        self.evaluations = deque()
        self.question_requests = []
        self.evaluation_requests = []
        self.resume_texts = []
        self._counter = 0

    def next_question(self, request):
        self.question_requests.append(request)
        if self.questions:
            item = self.questions.popleft()
            if isinstance(item, Exception):
                raise item
            return item
        self._counter += 1
        return make_question(f"Scenario {self._counter}: walk through how you would tune a slow query.")

    def evaluate_answer(self, request):
        self.evaluation_requests.append(request)
        if self.evaluations:
            item = self.evaluations.popleft()
            if isinstance(item, Exception):
                raise item
            return item
        return make_evaluation(7)

    def resume_profile(self, resume_text):
        self.resume_texts.append(resume_text)
        return ResumeProfile(
            name="Ada",
            target_roles=["Backend Engineer"],
            focus_topics=["SQL window functions", "Go concurrency"],
            experience_level="mid",
        )


class FakeClock:
    def __init__(self, start=None):
        self.now = start or datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **delta):
        self.now = self.now + timedelta(**delta)


@pytest.fixture(autouse=True)
def tmp_db(monkeypatch):
    td = tempfile.TemporaryDirectory()
    db_path = os.path.join(td.name, "test.db")
    monkeypatch.setattr(settings, "DB_PATH", db_path, raising=False)
    migrate(db_path)
    try:
        yield
    finally:
        td.cleanup()


@pytest.fixture
def provider():
    return ScriptedProvider()


@pytest.fixture
def clock():
    return FakeClock()
