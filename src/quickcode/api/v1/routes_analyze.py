from __future__ import annotations

import json
from typing import Any, List

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from src.quickcode.api.dependencies import get_extraction_gateway
from src.quickcode.domain.errors import ExtractionError, InvalidInput
from src.quickcode.domain.models.code_suggestion import ExtractedCode
from src.quickcode.security import get_api_key
from src.quickcode.services.audit.service import audit_service
from src.quickcode.services.extraction.gateway import INVALID_NOTE_MESSAGE, ExtractionGateway

ANALYSIS_FAILED_MESSAGE = "Failed to process the note with the AI model."

router = APIRouter(
    prefix="",
    tags=["analyze"],
    dependencies=[Depends(get_api_key)],
)


class AnalyzeRequest(BaseModel):
    note: Any = None


class AnalyzeResponse(BaseModel):
    summary: str
    codes: List[ExtractedCode]


class ErrorResponse(BaseModel):
    error: str


async def _note_from_body(request: Request) -> Any:
    """Return the ``note`` field of a JSON object body, or None.

    Any body that is not a JSON object, malformed JSON included, yields the
    same 400 error body as a missing note.
    """

    raw = await request.body()
    if not raw:
        return None
    try:
        body = json.loads(raw)
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    return body.get("note")


@router.post(
    "/analyze",
    response_model=AnalyzeResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
    openapi_extra={
        "requestBody": {
            "content": {"application/json": {"schema": AnalyzeRequest.model_json_schema()}},
        }
    },
)
async def analyze_note(
    request: Request,
    gateway: ExtractionGateway = Depends(get_extraction_gateway),
):
    """Propose billing codes and a one-sentence summary for a clinical note.

    Service outages and unparsable model output are reported identically to
    the caller; the distinction is kept in logs.
    """

    note = await _note_from_body(request)
    try:
        result = await gateway.analyze(note)
    except InvalidInput:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": INVALID_NOTE_MESSAGE},
        )
    except ExtractionError as exc:
        audit_service.log_event(
            action="analyze_note_failed",
            resource_type="clinical_note",
            extra={"error_type": type(exc).__name__},
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": ANALYSIS_FAILED_MESSAGE},
        )

    audit_service.log_event(
        action="analyze_note",
        resource_type="clinical_note",
        extra={"code_count": len(result.codes)},
    )

    return AnalyzeResponse(
        summary=result.summary,
        codes=[ExtractedCode(**item.model_dump(exclude={"status", "confidence_level"})) for item in result.codes],
    )
