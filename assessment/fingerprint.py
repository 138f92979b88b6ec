"""Question fingerprints used for duplicate detection."""
from __future__ import annotations

FINGERPRINT_LENGTH = 120


def fingerprint(text: str) -> str:
    """Lower-case, trim and truncate question text.

    Two questions whose first ``FINGERPRINT_LENGTH`` characters match after
    lower-casing are treated as the same question, so unrelated questions
    sharing a long opening phrase collide.
    """

    return text.lower().strip()[:FINGERPRINT_LENGTH]


__all__ = ["FINGERPRINT_LENGTH", "fingerprint"]
