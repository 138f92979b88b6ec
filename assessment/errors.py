from __future__ import annotations  # Error taxonomy surfaced by the assessment engine

from enum import Enum


class ErrorKind(str, Enum):  # Caller-visible failure categories
    VALIDATION = "VALIDATION"
    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    CONFLICT = "CONFLICT"
    GENERATION_FAILED = "GENERATION_FAILED"
    DUPLICATE_QUESTION = "DUPLICATE_QUESTION"
    NO_SCORABLE_QUESTIONS = "NO_SCORABLE_QUESTIONS"


RETRYABLE_KINDS = frozenset({ErrorKind.GENERATION_FAILED, ErrorKind.DUPLICATE_QUESTION})


class AssessmentError(Exception):  # Single exception type carrying an ErrorKind
    def __init__(self, kind: ErrorKind, detail: str) -> None:
        super().__init__(f"{kind.value}: {detail}")
        self.kind = kind
        self.detail = detail

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS


__all__ = ["AssessmentError", "ErrorKind", "RETRYABLE_KINDS"]
