from __future__ import annotations  # Ownership checks shared by the engine operations

from storage.sessions import load_session

from .errors import AssessmentError, ErrorKind
from .models import Session


def load_owned_session(session_id: str, owner_id: str) -> Session:  # NOT_FOUND before FORBIDDEN
    session = load_session(session_id)
    if session is None:
        raise AssessmentError(ErrorKind.NOT_FOUND, f"session {session_id} not found")
    if session.owner_id != owner_id:
        raise AssessmentError(ErrorKind.FORBIDDEN, f"session {session_id} belongs to another user")
    return session


__all__ = ["load_owned_session"]
