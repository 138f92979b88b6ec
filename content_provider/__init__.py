"""Content generation: next questions, answer evaluations and resume profiles."""
from .provider import (
    EVALUATE_ANSWER_KEY,
    NEXT_QUESTION_KEY,
    PROVIDER_SCHEMAS,
    RESUME_PROFILE_KEY,
    ContentProvider,
    GenerationFailed,
    LlmContentProvider,
    derive_confidence,
    provider_with_config,
)
from .schemas import (
    AnswerEvaluation,
    EvaluationRequest,
    GeneratedQuestion,
    QuestionRequest,
    RecentScore,
    ResumeProfile,
)

__all__ = [
    "AnswerEvaluation",
    "ContentProvider",
    "EVALUATE_ANSWER_KEY",
    "EvaluationRequest",
    "GeneratedQuestion",
    "GenerationFailed",
    "LlmContentProvider",
    "NEXT_QUESTION_KEY",
    "PROVIDER_SCHEMAS",
    "QuestionRequest",
    "RESUME_PROFILE_KEY",
    "RecentScore",
    "ResumeProfile",
    "derive_confidence",
    "provider_with_config",
]
