from __future__ import annotations

from datetime import datetime
from typing import List
from uuid import UUID

from pydantic import BaseModel

from src.quickcode.domain.models.code_suggestion import CodeSuggestion

EXPORT_CONFIRMATION = "Codes sent to billing queue!"


class ExportReceipt(BaseModel):
    """Acknowledges that accepted codes were handed to the billing queue."""

    id: UUID
    submitted_at: datetime
    codes: List[CodeSuggestion]
    message: str = EXPORT_CONFIRMATION
