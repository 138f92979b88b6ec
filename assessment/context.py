from __future__ import annotations  # Generation request assembly for the next question

import json
from typing import Optional, Sequence

from content_provider.schemas import QuestionRequest, ResumeProfile

from .models import ResumeMode, RoleMode, SessionConfig, TopicsMode


def describe_mode(config: SessionConfig, resume_profile: Optional[ResumeProfile] = None) -> str:  # Mode-specific prompt context
    mode = config.mode
    if isinstance(mode, RoleMode):
        return (
            f"TARGET ROLE: {mode.role}\n"
            f"Generate questions testing core skills and knowledge required for a {mode.role}."
        )
    if isinstance(mode, TopicsMode):
        return (
            f"INTERVIEW TOPICS: {', '.join(mode.topics)}\n"
            "Generate questions specifically about these topics only."
        )
    if isinstance(mode, ResumeMode):
        if resume_profile is None:
            raise ValueError(f"resume profile required for RESUME mode (resume {mode.resume_id})")
        profile = json.dumps(resume_profile.model_dump(), indent=2)
        return f"CANDIDATE PROFILE (extracted from resume):\n{profile}"
    raise TypeError(f"Unsupported session mode: {type(mode).__name__}")


def build_question_request(
    config: SessionConfig,
    *,
    asked_fingerprints: Sequence[str],
    weak_topics: Sequence[str],
    question_number: int,
    total_questions: int,
    resume_profile: Optional[ResumeProfile] = None,
    parent_question_text: Optional[str] = None,
) -> QuestionRequest:  # Assemble the next-question request
    return QuestionRequest(
        mode=config.mode.kind,
        mode_context=describe_mode(config, resume_profile),
        difficulty=config.difficulty.lower(),
        asked_fingerprints=list(asked_fingerprints),
        weak_topics=list(weak_topics) if config.focus_weak_areas else [],
        question_number=question_number,
        total_questions=total_questions,
        is_follow_up=parent_question_text is not None,
        parent_question_text=parent_question_text,
    )


__all__ = ["build_question_request", "describe_mode"]
