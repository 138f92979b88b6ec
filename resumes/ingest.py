from __future__ import annotations  # Resume text ingestion and profile extraction

import re
import uuid

from pydantic import BaseModel

from assessment.errors import AssessmentError, ErrorKind
from assessment.models import Resume, utcnow
from config.settings import settings
from content_provider import ContentProvider, GenerationFailed, ResumeProfile
from observability import log_event, span
from storage.resumes import insert_resume

_WHITESPACE = re.compile(r"\s+")
_NON_PRINTABLE = re.compile(r"[^\x20-\x7E\n]")


class IngestedResume(BaseModel):  # Stored resume id with the extracted profile
    resume_id: str
    profile: ResumeProfile


def clean_resume_text(raw_text: str) -> str:  # Collapse whitespace and drop non-printable characters
    collapsed = _WHITESPACE.sub(" ", raw_text or "")
    return _NON_PRINTABLE.sub("", collapsed).strip()


def ingest_resume(owner_id: str, file_name: str, raw_text: str, *, provider: ContentProvider) -> IngestedResume:  # Clean, profile and store a resume
    text = clean_resume_text(raw_text)
    if len(text) < settings.RESUME_MIN_CHARS:
        raise AssessmentError(
            ErrorKind.VALIDATION,
            f"resume text too short ({len(text)} characters); upload a text-based resume",
        )
    resume_id = uuid.uuid4().hex
    with span(resume_id, "resume_profile", owner_id=owner_id):
        try:
            profile = provider.resume_profile(text)
        except GenerationFailed as exc:
            raise AssessmentError(ErrorKind.GENERATION_FAILED, str(exc)) from exc
    resume = Resume(
        id=resume_id,
        owner_id=owner_id,
        file_name=file_name or "resume.txt",
        raw_text=text[: settings.RESUME_STORED_CHARS],
        profile=profile,
        created_at=utcnow(),
    )
    insert_resume(resume)
    log_event("resume_ingested", resume_id, owner_id=owner_id, topics=len(profile.focus_topics))
    return IngestedResume(resume_id=resume_id, profile=profile)
