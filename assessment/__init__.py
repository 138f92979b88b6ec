"""Adaptive assessment engine: turn sequencing, dedup, weak-area adaptation and reporting.

Only the domain models and errors are re-exported here; the engine modules
(``orchestrator``, ``recorder``, ``report``) import storage and are imported by
their full path.
"""
from .errors import AssessmentError, ErrorKind
from .models import (
    Done,
    NextTurn,
    Report,
    Session,
    SessionConfig,
    SessionState,
    SessionStatus,
    TranscriptEntry,
    parse_config,
)

__all__ = [
    "AssessmentError",
    "Done",
    "ErrorKind",
    "NextTurn",
    "Report",
    "Session",
    "SessionConfig",
    "SessionState",
    "SessionStatus",
    "TranscriptEntry",
    "parse_config",
]
