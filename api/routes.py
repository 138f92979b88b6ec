"""FastAPI routes for assessment sessions and resumes."""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Dict, NoReturn

from fastapi import APIRouter, Depends, Header, HTTPException

from api.schemas import (
    AnswerReq,
    CreateSessionReq,
    NextQuestionReq,
    ReportResp,
    ResumeReq,
    ResumeResp,
    StatusReq,
    TurnResp,
)
from assessment.errors import AssessmentError, ErrorKind
from assessment.models import Done, SessionState, SessionStatus, parse_config
from assessment.orchestrator import SessionOrchestrator
from assessment.recorder import EvaluationRecorder, RecordedAnswer
from assessment.report import ReportAggregator
from config import AssessmentSettings, load_config
from config.settings import settings
from content_provider import ContentProvider, provider_with_config
from resumes import ingest_resume


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/assessments")
resume_router = APIRouter(prefix="/api/resumes")

STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.CONFLICT: 409,
    ErrorKind.GENERATION_FAILED: 502,
    ErrorKind.DUPLICATE_QUESTION: 409,
    ErrorKind.NO_SCORABLE_QUESTIONS: 422,
}


@lru_cache(maxsize=1)
def get_provider() -> ContentProvider:
    return provider_with_config(settings.APP_CONFIG_PATH)


@lru_cache(maxsize=1)
def get_assessment_settings() -> AssessmentSettings:
    return load_config(settings.APP_CONFIG_PATH).assessment


def _raise_http(exc: AssessmentError) -> NoReturn:
    status = STATUS_BY_KIND[exc.kind]
    if status >= 500:
        logger.warning("Assessment request failed: %s", exc)
    detail = {"error": exc.kind.value, "message": exc.detail, "retryable": exc.retryable}
    raise HTTPException(status_code=status, detail=detail) from exc


@router.post("", response_model=SessionState, status_code=201)
def create_session(
    req: CreateSessionReq,
    user_id: str = Header(alias="X-User-Id"),
    provider: ContentProvider = Depends(get_provider),
    cfg: AssessmentSettings = Depends(get_assessment_settings),
) -> SessionState:
    orchestrator = SessionOrchestrator(provider, cfg)
    try:
        session = orchestrator.create_session(user_id, parse_config(req.model_dump()))
        return orchestrator.session_state(session.id, user_id)
    except AssessmentError as exc:
        _raise_http(exc)


@router.get("/{session_id}", response_model=SessionState)
def session_state(
    session_id: str,
    user_id: str = Header(alias="X-User-Id"),
    provider: ContentProvider = Depends(get_provider),
    cfg: AssessmentSettings = Depends(get_assessment_settings),
) -> SessionState:
    try:
        return SessionOrchestrator(provider, cfg).session_state(session_id, user_id)
    except AssessmentError as exc:
        _raise_http(exc)


@router.post("/{session_id}/next-question", response_model=TurnResp)
def next_question(
    session_id: str,
    req: NextQuestionReq,
    user_id: str = Header(alias="X-User-Id"),
    provider: ContentProvider = Depends(get_provider),
    cfg: AssessmentSettings = Depends(get_assessment_settings),
) -> TurnResp:
    try:
        result = SessionOrchestrator(provider, cfg).advance_turn(
            session_id,
            user_id,
            wants_follow_up=req.wants_follow_up,
            parent_question_id=req.parent_question_id,
        )
    except AssessmentError as exc:
        _raise_http(exc)
    if isinstance(result, Done):
        return TurnResp(done=True, outcome=result)
    return TurnResp(done=False, question=result)


@router.post("/{session_id}/answers", response_model=RecordedAnswer, status_code=201)
def record_answer(
    session_id: str,
    req: AnswerReq,
    user_id: str = Header(alias="X-User-Id"),
    provider: ContentProvider = Depends(get_provider),
    cfg: AssessmentSettings = Depends(get_assessment_settings),
) -> RecordedAnswer:
    try:
        return EvaluationRecorder(provider, cfg).record_answer(session_id, user_id, req.question_id, req.answer_text)
    except AssessmentError as exc:
        _raise_http(exc)


@router.patch("/{session_id}/status", response_model=Done)
def update_status(
    session_id: str,
    req: StatusReq,
    user_id: str = Header(alias="X-User-Id"),
    provider: ContentProvider = Depends(get_provider),
    cfg: AssessmentSettings = Depends(get_assessment_settings),
) -> Done:
    try:
        return SessionOrchestrator(provider, cfg).end_session(session_id, user_id, SessionStatus(req.status))
    except AssessmentError as exc:
        _raise_http(exc)


@router.get("/{session_id}/report", response_model=ReportResp)
def report(
    session_id: str,
    user_id: str = Header(alias="X-User-Id"),
    cfg: AssessmentSettings = Depends(get_assessment_settings),
) -> ReportResp:
    try:
        built, transcript = ReportAggregator(threshold=cfg.weak_score_threshold).fetch_report(session_id, user_id)
    except AssessmentError as exc:
        _raise_http(exc)
    return ReportResp(report=built, transcript=transcript)


@resume_router.post("", response_model=ResumeResp, status_code=201)
def upload_resume(
    req: ResumeReq,
    user_id: str = Header(alias="X-User-Id"),
    provider: ContentProvider = Depends(get_provider),
) -> ResumeResp:
    try:
        ingested = ingest_resume(user_id, req.file_name, req.text, provider=provider)
    except AssessmentError as exc:
        _raise_http(exc)
    return ResumeResp(resume_id=ingested.resume_id, profile=ingested.profile)


__all__ = ["get_assessment_settings", "get_provider", "resume_router", "router"]
