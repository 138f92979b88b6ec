"""Weak-topic detection over evaluated main questions.

Recomputed from the question set on every call; there is no cached counter to
keep in sync.
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Sequence, Tuple

from .models import QuestionRecord

WEAK_SCORE_THRESHOLD = 6.0


def scored_main(records: Iterable[QuestionRecord]) -> List[QuestionRecord]:
    """Main (non-follow-up) questions that have an evaluation, in input order."""

    return [record for record in records if record.is_main and record.evaluation is not None]


def topic_scores(records: Iterable[QuestionRecord]) -> List[Tuple[str, int]]:
    return [(record.question.topic, record.evaluation.score) for record in scored_main(records)]  # type: ignore[union-attr]


def topic_means(pairs: Iterable[Tuple[str, int]]) -> Dict[str, float]:
    """Arithmetic mean per topic, keyed in first-seen order."""

    buckets: Dict[str, List[int]] = {}
    for topic, score in pairs:
        buckets.setdefault(topic, []).append(score)
    return {topic: sum(scores) / len(scores) for topic, scores in buckets.items()}


def weak_topics(records: Sequence[QuestionRecord], threshold: float = WEAK_SCORE_THRESHOLD) -> List[str]:
    """Topics whose mean score is strictly below ``threshold``, in first-seen order."""

    return [topic for topic, mean in topic_means(topic_scores(records)).items() if mean < threshold]


__all__ = ["WEAK_SCORE_THRESHOLD", "scored_main", "topic_means", "topic_scores", "weak_topics"]
