"""Pydantic schemas for the assessment session API."""
from __future__ import annotations

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field

from assessment.models import Done, NextTurn, Report, SessionState, TranscriptEntry
from content_provider.schemas import ResumeProfile


class CreateSessionReq(BaseModel):  # Raw fields; parse_config validates them into a SessionConfig
    mode: Any = None
    role: Any = None
    topics: Any = None
    resume_id: Any = None
    difficulty: Any = None
    num_questions: Any = None
    time_limit_mins: Any = None
    no_repeats: Any = None
    focus_weak_areas: Any = None


class NextQuestionReq(BaseModel):
    wants_follow_up: bool = False
    parent_question_id: Optional[str] = None


class AnswerReq(BaseModel):
    question_id: str
    answer_text: str


class StatusReq(BaseModel):
    status: Literal["COMPLETED", "ABANDONED"]


class ResumeReq(BaseModel):
    file_name: str = "resume.txt"
    text: str


class TurnResp(BaseModel):
    done: bool
    question: Optional[NextTurn] = None
    outcome: Optional[Done] = None


class ReportResp(BaseModel):
    report: Report
    transcript: List[TranscriptEntry] = Field(default_factory=list)


class ResumeResp(BaseModel):
    resume_id: str
    profile: ResumeProfile


__all__ = [
    "AnswerReq",
    "CreateSessionReq",
    "NextQuestionReq",
    "ReportResp",
    "ResumeReq",
    "ResumeResp",
    "SessionState",
    "StatusReq",
    "TurnResp",
]
