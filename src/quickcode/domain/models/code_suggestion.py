from __future__ import annotations

from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


class CodeType(str, Enum):
    """Coding systems the extraction prompt asks for.

    The wire field stays an open string; unknown systems are kept verbatim.
    """

    ICD10 = "ICD-10"
    CPT = "CPT"
    HCPCS = "HCPCS"


# Spellings models commonly emit for the known systems.
_CODE_TYPE_ALIASES = {
    "icd-10": CodeType.ICD10,
    "icd10": CodeType.ICD10,
    "icd-10-cm": CodeType.ICD10,
    "cpt": CodeType.CPT,
    "cpt-4": CodeType.CPT,
    "hcpcs": CodeType.HCPCS,
}


class CodeStatus(str, Enum):
    SUGGESTED = "suggested"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class ConfidenceLevel(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class ExtractedCode(BaseModel):
    """One billing code as proposed by the model, before any review."""

    model_config = ConfigDict(str_strip_whitespace=True, coerce_numbers_to_str=True)

    code: str = Field(min_length=1)
    type: str = Field(min_length=1)
    description: str
    confidence: float = Field(ge=0.0, le=1.0)

    @field_validator("type")
    @classmethod
    def _normalize_type(cls, value: str) -> str:
        known = _CODE_TYPE_ALIASES.get(value.lower())
        return known.value if known is not None else value

    @property
    def code_type(self) -> Optional[CodeType]:
        """The known coding system for this code, if any."""
        try:
            return CodeType(self.type)
        except ValueError:
            return None


class CodeSuggestion(ExtractedCode):
    """A proposed code together with its review status."""

    status: CodeStatus = CodeStatus.SUGGESTED

    @computed_field  # type: ignore[misc]
    @property
    def confidence_level(self) -> ConfidenceLevel:
        if self.confidence >= 0.8:
            return ConfidenceLevel.HIGH
        if self.confidence >= 0.6:
            return ConfidenceLevel.MEDIUM
        return ConfidenceLevel.LOW


class AnalysisResult(BaseModel):
    """Gateway output for one analyze request.

    Frozen: review sessions take deep copies of the codes before mutating
    their status.
    """

    model_config = ConfigDict(frozen=True)

    summary: str
    codes: Tuple[CodeSuggestion, ...] = ()
