"""Follow-up offer policy.

The orchestrator never decides on its own whether to probe deeper; callers pass
``wants_follow_up``. This module holds the default rule callers use to make
that choice, so another rule can be swapped in without touching the state
machine.
"""
from __future__ import annotations

from typing import Callable

from .models import Evaluation, QuestionRecord

FollowUpPolicy = Callable[[Evaluation], bool]


def low_confidence_policy(evaluation: Evaluation) -> bool:
    """Offer a follow-up when the evaluator is unsure the score is earned."""

    return evaluation.confidence == "low"


def offers_follow_up(record: QuestionRecord, *, has_follow_up: bool = False, policy: FollowUpPolicy = low_confidence_policy) -> bool:
    """Whether a follow-up should be offered for ``record``.

    Only evaluated main questions without an existing follow-up qualify.
    """

    if not record.is_main or has_follow_up or record.evaluation is None:
        return False
    return policy(record.evaluation)


__all__ = ["FollowUpPolicy", "low_confidence_policy", "offers_follow_up"]
