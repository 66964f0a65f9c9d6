from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from src.quickcode.domain.models.code_suggestion import CodeSuggestion
from src.quickcode.domain.models.conflict import ConflictOutcome


class ReviewSessionState(BaseModel):
    """Point-in-time view of one note-review session."""

    id: UUID
    created_at: datetime
    summary: str = ""
    codes: List[CodeSuggestion] = Field(default_factory=list)
    conflict_result: Optional[ConflictOutcome] = None
    conflict_check_pending: bool = False
    busy: bool = False
    # Last user-visible failure message, cleared by the next analysis.
    error: Optional[str] = None
    generation: int = 0
