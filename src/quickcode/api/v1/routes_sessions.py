from __future__ import annotations

from typing import Any, List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel

from src.quickcode.api.dependencies import get_review_session_service
from src.quickcode.domain.errors import (
    ExtractionError,
    InvalidInput,
    InvalidStatusTransition,
    NothingToExport,
    UnknownCode,
)
from src.quickcode.domain.models.code_suggestion import CodeStatus, CodeSuggestion
from src.quickcode.domain.models.conflict import ConflictOutcome
from src.quickcode.domain.models.export_receipt import ExportReceipt
from src.quickcode.domain.models.review_session import ReviewSessionState
from src.quickcode.security import get_api_key
from src.quickcode.services.audit.service import audit_service
from src.quickcode.services.review.service import InMemoryReviewSessionService
from src.quickcode.services.review.session import ReviewSession

router = APIRouter(
    prefix="/sessions",
    tags=["sessions"],
    dependencies=[Depends(get_api_key)],
)


class StartAnalysisRequest(BaseModel):
    note: Any = None


class SetStatusRequest(BaseModel):
    status: CodeStatus


def _require_session(session_id: UUID, sessions: InMemoryReviewSessionService) -> ReviewSession:
    session = sessions.get_session(session_id)
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    return session


@router.post("/", response_model=ReviewSessionState, status_code=status.HTTP_201_CREATED)
async def create_session(
    sessions: InMemoryReviewSessionService = Depends(get_review_session_service),
) -> ReviewSessionState:
    session = sessions.create_session()

    audit_service.log_event(
        action="create_session",
        resource_type="review_session",
        resource_id=str(session.id),
    )

    return session.snapshot()


@router.get("/{session_id}", response_model=ReviewSessionState)
async def get_session(
    session_id: UUID,
    sessions: InMemoryReviewSessionService = Depends(get_review_session_service),
) -> ReviewSessionState:
    return _require_session(session_id, sessions).snapshot()


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def end_session(
    session_id: UUID,
    sessions: InMemoryReviewSessionService = Depends(get_review_session_service),
) -> Response:
    if not sessions.end_session(session_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")

    audit_service.log_event(
        action="end_session",
        resource_type="review_session",
        resource_id=str(session_id),
    )

    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{session_id}/analyze", response_model=ReviewSessionState)
async def analyze_in_session(
    session_id: UUID,
    payload: StartAnalysisRequest,
    sessions: InMemoryReviewSessionService = Depends(get_review_session_service),
) -> ReviewSessionState:
    """Replace the session's suggestions with a fresh analysis of the note.

    Re-entry while an analysis is outstanding is refused with 409.
    """

    session = _require_session(session_id, sessions)
    if session.busy:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="An analysis is already in progress for this session",
        )

    try:
        await session.start_analysis(payload.note)
    except InvalidInput:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=session.error)
    except ExtractionError as exc:
        audit_service.log_event(
            action="analyze_session_failed",
            resource_type="review_session",
            resource_id=str(session_id),
            extra={"error_type": type(exc).__name__},
        )
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=session.error)

    audit_service.log_event(
        action="analyze_session",
        resource_type="review_session",
        resource_id=str(session_id),
        extra={"generation": session.generation, "code_count": len(session.codes)},
    )

    return session.snapshot()


@router.post("/{session_id}/codes/{code}/status", response_model=CodeSuggestion)
async def set_code_status(
    session_id: UUID,
    code: str,
    payload: SetStatusRequest,
    sessions: InMemoryReviewSessionService = Depends(get_review_session_service),
) -> CodeSuggestion:
    session = _require_session(session_id, sessions)
    try:
        updated = session.set_status(code, payload.status)
    except UnknownCode as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except InvalidStatusTransition as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))

    audit_service.log_event(
        action="set_code_status",
        resource_type="review_session",
        resource_id=str(session_id),
        extra={"code": code, "status": updated.status.value},
    )

    return updated


@router.get("/{session_id}/accepted", response_model=List[CodeSuggestion])
async def list_accepted_codes(
    session_id: UUID,
    sessions: InMemoryReviewSessionService = Depends(get_review_session_service),
) -> List[CodeSuggestion]:
    return _require_session(session_id, sessions).accepted_codes()


@router.post("/{session_id}/conflicts", response_model=ConflictOutcome)
async def run_conflict_check(
    session_id: UUID,
    sessions: InMemoryReviewSessionService = Depends(get_review_session_service),
) -> ConflictOutcome:
    session = _require_session(session_id, sessions)
    outcome = await session.run_conflict_check()
    if outcome is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Accepted codes changed during the check; run it again",
        )

    audit_service.log_event(
        action="conflict_check",
        resource_type="review_session",
        resource_id=str(session_id),
        extra={"status": outcome.status.value, "conflict_count": len(outcome.conflicts)},
    )

    return outcome


@router.post("/{session_id}/export", response_model=ExportReceipt, status_code=status.HTTP_201_CREATED)
async def export_accepted_codes(
    session_id: UUID,
    sessions: InMemoryReviewSessionService = Depends(get_review_session_service),
) -> ExportReceipt:
    session = _require_session(session_id, sessions)
    try:
        receipt = session.export()
    except NothingToExport as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    audit_service.log_event(
        action="export_codes",
        resource_type="review_session",
        resource_id=str(session_id),
        extra={"receipt_id": str(receipt.id), "code_count": len(receipt.codes)},
    )

    return receipt
