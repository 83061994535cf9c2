# app/api/routes_advisor.py
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request

from app.core.errors import InvalidDecisionInput, SessionNotFound
from app.schemas.advisor_schemas import (
    AnalyticsReport, DocumentIn, MessageIn, StageOut, StartSessionIn, StartSessionOut,
    TurnResult, UnderwritingDecision, UnderwritingInput, VerificationIn
)
from app.services.advisor_service import AdvisorService

router = APIRouter(prefix="/advisor", tags=["advisor"])


def get_advisor(request: Request) -> AdvisorService:
    return request.app.state.advisor


def session_missing(exc: SessionNotFound) -> HTTPException:
    # the caller is expected to restart with a fresh greeting
    return HTTPException(
        status_code=404,
        detail={
            "message": exc.restart_message,
            "next_steps": exc.next_steps,
            "session_id": exc.session_id,
        },
    )


@router.post("/sessions", response_model=StartSessionOut)
def start_session(body: Optional[StartSessionIn] = None, advisor: AdvisorService = Depends(get_advisor)):
    channel = body.channel if body else None
    return advisor.start_session(channel or "web")


@router.post("/sessions/{session_id}/messages", response_model=TurnResult)
async def post_message(session_id: str, message: MessageIn, advisor: AdvisorService = Depends(get_advisor)):
    try:
        return await advisor.process_message(session_id, message.text)
    except SessionNotFound as e:
        raise session_missing(e)


@router.post("/sessions/{session_id}/documents", response_model=StageOut)
async def record_document(session_id: str, body: DocumentIn, advisor: AdvisorService = Depends(get_advisor)):
    try:
        return await advisor.record_document(session_id, body.document_type)
    except SessionNotFound as e:
        raise session_missing(e)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/sessions/{session_id}/verifications", response_model=StageOut)
async def apply_verification(session_id: str, body: VerificationIn, advisor: AdvisorService = Depends(get_advisor)):
    try:
        return await advisor.apply_verification(session_id, body.source, body.facts)
    except SessionNotFound as e:
        raise session_missing(e)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.get("/sessions/{session_id}/analytics", response_model=AnalyticsReport)
async def get_analytics(session_id: str, advisor: AdvisorService = Depends(get_advisor)):
    try:
        return await advisor.get_analytics(session_id)
    except SessionNotFound as e:
        raise session_missing(e)


@router.post("/sessions/{session_id}/underwriting", response_model=UnderwritingDecision)
async def underwrite_session(session_id: str, advisor: AdvisorService = Depends(get_advisor)):
    try:
        return await advisor.underwrite_session(session_id)
    except SessionNotFound as e:
        raise session_missing(e)
    except InvalidDecisionInput as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.delete("/sessions/{session_id}")
def end_session(session_id: str, advisor: AdvisorService = Depends(get_advisor)):
    try:
        advisor.end_session(session_id)
    except SessionNotFound as e:
        raise session_missing(e)
    return {"message": "session ended", "session_id": session_id}


@router.post("/underwriting", response_model=UnderwritingDecision)
def run_underwriting(snapshot: UnderwritingInput, advisor: AdvisorService = Depends(get_advisor)):
    return advisor.run_underwriting(snapshot)
