from __future__ import annotations  # LLM-backed content provider for questions, evaluations and resume profiles

from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Tuple, Type

from pydantic import BaseModel

from config import LlmRoute, load_app_registry
from llm_gateway import HttpClient, LlmGatewayError, runnable as llm_runnable

from .prompts import (
    EVALUATION_PROMPT,
    QUESTION_PROMPT,
    RESUME_PROMPT,
    evaluation_inputs,
    question_inputs,
    resume_inputs,
)
from .schemas import (
    AnswerEvaluation,
    Confidence,
    EvaluationRequest,
    GeneratedQuestion,
    QuestionRequest,
    ResumeProfile,
)

NEXT_QUESTION_KEY = "content_provider.next_question"
EVALUATE_ANSWER_KEY = "content_provider.evaluate_answer"
RESUME_PROFILE_KEY = "content_provider.resume_profile"

PROVIDER_SCHEMAS: Dict[str, Type[BaseModel]] = {
    NEXT_QUESTION_KEY: GeneratedQuestion,
    EVALUATE_ANSWER_KEY: AnswerEvaluation,
    RESUME_PROFILE_KEY: ResumeProfile,
}

LOW_CONTENT_CHARS = 50


class GenerationFailed(RuntimeError):  # Provider exhausted its attempts or returned unusable output
    pass


class ContentProvider(Protocol):  # Pluggable generation capability
    def next_question(self, request: QuestionRequest) -> GeneratedQuestion: ...

    def evaluate_answer(self, request: EvaluationRequest) -> AnswerEvaluation: ...

    def resume_profile(self, resume_text: str) -> ResumeProfile: ...


def derive_confidence(score: int, answer_text: str) -> Confidence:  # Deterministic confidence from score and answer length
    if score <= 4 or len(answer_text.strip()) < LOW_CONTENT_CHARS:
        return "low"
    if score >= 8:
        return "high"
    return "medium"


class LlmContentProvider:
    """Content provider that routes each request kind through ``llm_gateway``.

    Each kind is a ``prompt | llm`` chain. Gateway failures (transport errors
    and schema mismatches that outlast the route's retries) surface as
    :class:`GenerationFailed`.
    """

    def __init__(self, registry: Dict[str, Tuple[LlmRoute, Type[BaseModel]]], *, client: Optional[HttpClient] = None) -> None:
        self._question_chain = QUESTION_PROMPT | llm_runnable(_route(registry, NEXT_QUESTION_KEY), GeneratedQuestion, client=client)
        self._evaluation_chain = EVALUATION_PROMPT | llm_runnable(_route(registry, EVALUATE_ANSWER_KEY), AnswerEvaluation, client=client)
        self._resume_chain = RESUME_PROMPT | llm_runnable(_route(registry, RESUME_PROFILE_KEY), ResumeProfile, client=client)

    def next_question(self, request: QuestionRequest) -> GeneratedQuestion:
        return _invoke(self._question_chain, question_inputs(request), NEXT_QUESTION_KEY)

    def evaluate_answer(self, request: EvaluationRequest) -> AnswerEvaluation:
        result: AnswerEvaluation = _invoke(self._evaluation_chain, evaluation_inputs(request), EVALUATE_ANSWER_KEY)
        confidence = derive_confidence(result.score, request.answer_text)
        if result.confidence != confidence:
            result = result.model_copy(update={"confidence": confidence})
        return result

    def resume_profile(self, resume_text: str) -> ResumeProfile:
        return _invoke(self._resume_chain, resume_inputs(resume_text), RESUME_PROFILE_KEY)


def provider_with_config(config_path: Path, *, client: Optional[HttpClient] = None) -> LlmContentProvider:  # Convenience helper using app config
    registry = load_app_registry(config_path, PROVIDER_SCHEMAS)
    return LlmContentProvider(registry, client=client)


def _route(registry: Dict[str, Tuple[LlmRoute, Type[BaseModel]]], key: str) -> LlmRoute:
    if key not in registry:
        raise KeyError(f"Registry entry missing for '{key}'")
    route, _ = registry[key]
    return route


def _invoke(chain: Any, inputs: Dict[str, Any], key: str) -> Any:  # Run a chain, mapping gateway failures
    try:
        return chain.invoke(inputs)
    except LlmGatewayError as exc:
        raise GenerationFailed(f"{key} failed: {exc}") from exc


__all__ = [
    "ContentProvider",
    "EVALUATE_ANSWER_KEY",
    "GenerationFailed",
    "LOW_CONTENT_CHARS",
    "LlmContentProvider",
    "NEXT_QUESTION_KEY",
    "PROVIDER_SCHEMAS",
    "RESUME_PROFILE_KEY",
    "derive_confidence",
    "provider_with_config",
]
