from __future__ import annotations  # Bounded-retry duplicate question guard

from typing import Callable, Collection, Optional, Tuple

from content_provider.schemas import GeneratedQuestion

from .errors import AssessmentError, ErrorKind
from .fingerprint import fingerprint

MAX_GENERATION_ATTEMPTS = 2  # one generation plus exactly one regeneration


def ensure_unique(candidate_text: str, asked_fingerprints: Collection[str]) -> Tuple[str, bool]:  # (fingerprint, is_duplicate)
    key = fingerprint(candidate_text)
    return key, key in asked_fingerprints


def generate_unique(
    generate: Callable[[], GeneratedQuestion],
    asked_fingerprints: Collection[str],
    *,
    on_duplicate: Optional[Callable[[int, str], None]] = None,
) -> Tuple[GeneratedQuestion, str]:
    """Call ``generate`` until it yields an unseen question, at most twice.

    A second collision raises ``DUPLICATE_QUESTION``; errors from ``generate``
    propagate untouched.
    """

    asked = set(asked_fingerprints)
    for attempt in range(1, MAX_GENERATION_ATTEMPTS + 1):
        candidate = generate()
        key, duplicate = ensure_unique(candidate.question_text, asked)
        if not duplicate:
            return candidate, key
        if on_duplicate is not None:
            on_duplicate(attempt, key)
    raise AssessmentError(
        ErrorKind.DUPLICATE_QUESTION,
        f"generated a previously asked question {MAX_GENERATION_ATTEMPTS} times in a row",
    )


__all__ = ["MAX_GENERATION_ATTEMPTS", "ensure_unique", "generate_unique"]
