from __future__ import annotations  # Request and response shapes exchanged with the content provider

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

Confidence = Literal["low", "medium", "high"]


class GeneratedQuestion(BaseModel):  # next-question output
    question_text: str = Field(min_length=10)
    topic: str = Field(min_length=1)
    difficulty: Literal["easy", "medium", "hard"]
    expected_points: List[str] = Field(min_length=2, max_length=8)
    follow_up_triggers: List[str] = Field(min_length=1, max_length=4)
    rationale: str

    @field_validator("difficulty", mode="before")
    @classmethod
    def _lower_difficulty(cls, value: object) -> object:  # Accept EASY/Medium spellings
        return value.strip().lower() if isinstance(value, str) else value


class AnswerEvaluation(BaseModel):  # evaluate-answer output
    score: int = Field(ge=0, le=10)
    strengths: List[str] = Field(default_factory=list)
    missing_points: List[str] = Field(default_factory=list)
    feedback: str = Field(min_length=10)
    next_focus_topic: Optional[str] = None
    confidence: Confidence


class ResumeSkills(BaseModel):  # Skill buckets extracted from a resume
    technical: List[str] = Field(default_factory=list)
    tools: List[str] = Field(default_factory=list)
    soft: List[str] = Field(default_factory=list)


class ResumeProject(BaseModel):  # Project with enough technical detail to probe
    name: str
    tech_stack: List[str] = Field(default_factory=list)
    key_achievements: List[str] = Field(default_factory=list)


class ResumeProfile(BaseModel):  # resume-profile output
    name: Optional[str] = None
    target_roles: List[str] = Field(min_length=1)
    skills: ResumeSkills = Field(default_factory=ResumeSkills)
    projects: List[ResumeProject] = Field(default_factory=list)
    focus_topics: List[str] = Field(min_length=1, max_length=10)
    red_flags: List[str] = Field(default_factory=list)
    experience_level: Literal["junior", "mid", "senior"]


class RecentScore(BaseModel):  # Prior evaluation fed back as context
    topic: str
    score: int


class QuestionRequest(BaseModel):  # next-question input assembled by the orchestrator
    mode: Literal["ROLE", "TOPICS", "RESUME"]
    mode_context: str
    difficulty: Literal["easy", "medium", "hard"]
    asked_fingerprints: List[str] = Field(default_factory=list)
    weak_topics: List[str] = Field(default_factory=list)
    question_number: int = Field(ge=1)
    total_questions: int = Field(ge=1)
    is_follow_up: bool = False
    parent_question_text: Optional[str] = None


class EvaluationRequest(BaseModel):  # evaluate-answer input assembled by the recorder
    question_text: str
    topic: str
    difficulty: Literal["easy", "medium", "hard"]
    expected_points: List[str]
    answer_text: str
    recent_scores: List[RecentScore] = Field(default_factory=list)


__all__ = [
    "AnswerEvaluation",
    "Confidence",
    "EvaluationRequest",
    "GeneratedQuestion",
    "QuestionRequest",
    "RecentScore",
    "ResumeProfile",
    "ResumeProject",
    "ResumeSkills",
]
