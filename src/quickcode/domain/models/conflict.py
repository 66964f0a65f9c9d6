from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

CLEAN_MESSAGE = "No NCCI edit conflicts found."
NO_ACCEPTED_CODES_MESSAGE = "No accepted codes to check."


class ConflictStatus(str, Enum):
    CLEAN = "clean"
    INFO = "info"
    CONFLICT = "conflict"


class ConflictReason(BaseModel):
    reason: str


class ConflictOutcome(BaseModel):
    """Result of checking an accepted set against the conflict rule table.

    A tagged variant: ``status`` selects which of ``message`` or ``conflicts``
    is meaningful. Use the ``clean``/``info``/``conflict`` constructors rather
    than building instances by hand.
    """

    model_config = ConfigDict(frozen=True)

    status: ConflictStatus
    message: Optional[str] = None
    conflicts: List[ConflictReason] = []

    @classmethod
    def clean(cls) -> "ConflictOutcome":
        return cls(status=ConflictStatus.CLEAN, message=CLEAN_MESSAGE)

    @classmethod
    def info(cls, message: str) -> "ConflictOutcome":
        return cls(status=ConflictStatus.INFO, message=message)

    @classmethod
    def conflict(cls, reasons: List[str]) -> "ConflictOutcome":
        return cls(
            status=ConflictStatus.CONFLICT,
            conflicts=[ConflictReason(reason=reason) for reason in reasons],
        )

    @property
    def has_conflicts(self) -> bool:
        return self.status == ConflictStatus.CONFLICT
