from __future__ import annotations  # Assessment domain models

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Callable, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from content_provider.schemas import Confidence, ResumeProfile

from .errors import AssessmentError, ErrorKind

Difficulty = Literal["EASY", "MEDIUM", "HARD"]
Clock = Callable[[], datetime]


def utcnow() -> datetime:  # Timezone-aware current time used as the default clock
    return datetime.now(timezone.utc)


class SessionStatus(str, Enum):  # Session lifecycle; terminal states never change again
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    ABANDONED = "ABANDONED"

    @property
    def is_terminal(self) -> bool:
        return self is not SessionStatus.IN_PROGRESS


class RoleMode(BaseModel):  # Questions target the skills of a named role
    model_config = ConfigDict(frozen=True)

    kind: Literal["ROLE"] = "ROLE"
    role: str

    @field_validator("role")
    @classmethod
    def _role_required(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("role name is required for ROLE mode")
        return cleaned


class TopicsMode(BaseModel):  # Questions stay inside an explicit topic list
    model_config = ConfigDict(frozen=True)

    kind: Literal["TOPICS"] = "TOPICS"
    topics: List[str]

    @field_validator("topics")
    @classmethod
    def _topics_required(cls, value: List[str]) -> List[str]:
        cleaned = [topic.strip() for topic in value if topic and topic.strip()]
        if not cleaned:
            raise ValueError("at least one topic is required for TOPICS mode")
        return cleaned


class ResumeMode(BaseModel):  # Questions derive from a stored resume profile
    model_config = ConfigDict(frozen=True)

    kind: Literal["RESUME"] = "RESUME"
    resume_id: str

    @field_validator("resume_id")
    @classmethod
    def _resume_required(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("resume is required for RESUME mode")
        return cleaned


SessionMode = Annotated[Union[RoleMode, TopicsMode, ResumeMode], Field(discriminator="kind")]


class SessionConfig(BaseModel):  # Immutable session setup
    model_config = ConfigDict(frozen=True)

    mode: SessionMode
    difficulty: Difficulty = "MEDIUM"
    num_questions: Optional[int] = Field(default=None, ge=1, le=30)
    time_limit_mins: Optional[int] = Field(default=None, ge=5, le=120)
    no_repeats: bool = True
    focus_weak_areas: bool = False

    @model_validator(mode="after")
    def _exactly_one_limit(self) -> "SessionConfig":
        if (self.num_questions is None) == (self.time_limit_mins is None):
            raise ValueError("exactly one of question count or time limit is required")
        return self


def parse_config(data: Mapping[str, Any]) -> SessionConfig:  # Flat request fields -> tagged config
    mode = str(data.get("mode") or "").upper()
    if mode == "ROLE":
        mode_payload: dict[str, Any] = {"kind": mode, "role": data.get("role") or ""}
    elif mode == "TOPICS":
        mode_payload = {"kind": mode, "topics": data.get("topics") or []}
    elif mode == "RESUME":
        mode_payload = {"kind": mode, "resume_id": data.get("resume_id") or ""}
    else:
        raise AssessmentError(ErrorKind.VALIDATION, f"unknown mode '{data.get('mode')}'")
    fields = {
        key: data[key]
        for key in ("difficulty", "num_questions", "time_limit_mins", "no_repeats", "focus_weak_areas")
        if data.get(key) is not None
    }
    if isinstance(fields.get("difficulty"), str):
        fields["difficulty"] = fields["difficulty"].upper()
    try:
        return SessionConfig(mode=mode_payload, **fields)
    except ValidationError as exc:
        messages = "; ".join(_error_text(err) for err in exc.errors())
        raise AssessmentError(ErrorKind.VALIDATION, messages) from exc


def _error_text(err: Mapping[str, Any]) -> str:
    location = ".".join(str(part) for part in err.get("loc", ()) if part not in {"ROLE", "TOPICS", "RESUME"})
    message = str(err.get("msg", "invalid value")).removeprefix("Value error, ")
    return f"{location}: {message}" if location else message


class Session(BaseModel):  # Mutable session header
    id: str
    owner_id: str
    config: SessionConfig
    status: SessionStatus = SessionStatus.IN_PROGRESS
    started_at: datetime
    ended_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


class Question(BaseModel):  # Immutable generated question
    model_config = ConfigDict(frozen=True)

    id: str
    session_id: str
    index: int = Field(ge=0)
    text: str
    topic: str
    difficulty: Difficulty
    fingerprint: str
    expected_points: List[str] = Field(default_factory=list)
    follow_up_triggers: List[str] = Field(default_factory=list)
    parent_question_id: Optional[str] = None
    is_follow_up: bool = False
    created_at: datetime


class Answer(BaseModel):  # Candidate answer, one per question
    model_config = ConfigDict(frozen=True)

    id: str
    question_id: str
    text: str
    submitted_at: datetime


class Evaluation(BaseModel):  # Scored answer, one per answer
    model_config = ConfigDict(frozen=True)

    id: str
    answer_id: str
    score: int = Field(ge=0, le=10)
    strengths: List[str] = Field(default_factory=list)
    missing_points: List[str] = Field(default_factory=list)
    feedback: str
    next_focus_topic: Optional[str] = None
    confidence: Confidence
    created_at: datetime


class QuestionRecord(BaseModel):  # Read view joining a question with its answer and evaluation
    question: Question
    answer: Optional[Answer] = None
    evaluation: Optional[Evaluation] = None

    @property
    def answered(self) -> bool:
        return self.answer is not None

    @property
    def is_main(self) -> bool:
        return not self.question.is_follow_up


class TopicScore(BaseModel):  # Per-topic aggregate in a report
    topic: str
    avg_score: float
    question_count: int


class Report(BaseModel):  # Final session report, stored once
    model_config = ConfigDict(frozen=True)

    id: str
    session_id: str
    overall_score: float
    topic_scores: List[TopicScore]
    strengths: List[str]
    weaknesses: List[str]
    improvement_tips: List[str]
    created_at: datetime


class FollowUpEntry(BaseModel):  # Follow-up half of a transcript entry
    question: Question
    answer: Optional[Answer] = None
    evaluation: Optional[Evaluation] = None


class TranscriptEntry(BaseModel):  # Main question with its optional follow-up
    question: Question
    answer: Optional[Answer] = None
    evaluation: Optional[Evaluation] = None
    follow_up: Optional[FollowUpEntry] = None


class NextTurn(BaseModel):  # Question handed to the candidate
    question_id: str
    question_text: str
    topic: str
    difficulty: Difficulty
    index: int
    question_number: int
    total_questions: int
    is_follow_up: bool
    parent_question_id: Optional[str] = None
    replayed: bool = False


class Done(BaseModel):  # Session reached a terminal state
    session_id: str
    status: SessionStatus
    reason: str
    ended_at: Optional[datetime] = None


class SessionState(BaseModel):  # Read-only session summary
    session_id: str
    status: SessionStatus
    mode: Literal["ROLE", "TOPICS", "RESUME"]
    role: Optional[str] = None
    topics: List[str] = Field(default_factory=list)
    resume_id: Optional[str] = None
    difficulty: Difficulty
    num_questions: Optional[int] = None
    time_limit_mins: Optional[int] = None
    answered_count: int
    started_at: datetime
    ended_at: Optional[datetime] = None
    has_report: bool = False


class Resume(BaseModel):  # Stored resume with its extracted profile
    id: str
    owner_id: str
    file_name: str
    raw_text: str
    profile: ResumeProfile
    created_at: datetime


__all__ = [
    "Answer",
    "Clock",
    "Difficulty",
    "Done",
    "Evaluation",
    "FollowUpEntry",
    "NextTurn",
    "Question",
    "QuestionRecord",
    "Report",
    "Resume",
    "ResumeMode",
    "RoleMode",
    "Session",
    "SessionConfig",
    "SessionMode",
    "SessionState",
    "SessionStatus",
    "TopicScore",
    "TopicsMode",
    "TranscriptEntry",
    "parse_config",
    "utcnow",
]
