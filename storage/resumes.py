"""Persistence helpers for resumes."""
from __future__ import annotations

from typing import Optional

from assessment.models import Resume
from content_provider.schemas import ResumeProfile

from .sqlite import get_conn


def insert_resume(resume: Resume) -> None:
    """Insert a resume with its extracted profile."""

    with get_conn() as conn:
        conn.execute(
            """INSERT INTO resumes (id, owner_id, file_name, raw_text, profile_json, created_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (
                resume.id,
                resume.owner_id,
                resume.file_name,
                resume.raw_text,
                resume.profile.model_dump_json(),
                resume.created_at.isoformat(),
            ),
        )


def load_resume(resume_id: str) -> Optional[Resume]:
    """Return the stored resume or ``None``."""

    with get_conn() as conn:
        row = conn.execute(
            "SELECT id, owner_id, file_name, raw_text, profile_json, created_at FROM resumes WHERE id = ?",
            (resume_id,),
        ).fetchone()
    if row is None:
        return None
    return Resume(
        id=row["id"],
        owner_id=row["owner_id"],
        file_name=row["file_name"],
        raw_text=row["raw_text"],
        profile=ResumeProfile.model_validate_json(row["profile_json"]),
        created_at=row["created_at"],
    )
