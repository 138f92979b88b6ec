from __future__ import annotations  # Re-export resume ingestion API

from .ingest import IngestedResume, clean_resume_text, ingest_resume

__all__ = ["IngestedResume", "clean_resume_text", "ingest_resume"]
