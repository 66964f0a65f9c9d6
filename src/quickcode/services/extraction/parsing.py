from __future__ import annotations

import json
import logging
import re
from typing import Dict, List

from pydantic import BaseModel, ValidationError

from src.quickcode.domain.errors import MalformedModelOutput
from src.quickcode.domain.models.code_suggestion import (
    AnalysisResult,
    CodeSuggestion,
    ExtractedCode,
)

logger = logging.getLogger("extraction")

_LEADING_FENCE = re.compile(r"^```(?:json)?[ \t]*\n?", re.IGNORECASE)
_TRAILING_FENCE = re.compile(r"\n?[ \t]*```$")


class _ModelOutput(BaseModel):
    """Shape the prompt asks the model to answer with."""

    summary: str
    codes: List[ExtractedCode]


def strip_code_fences(text: str) -> str:
    """Remove a leading ```json (or bare ```) fence and a trailing ``` fence."""

    cleaned = text.strip()
    cleaned = _LEADING_FENCE.sub("", cleaned, count=1)
    cleaned = _TRAILING_FENCE.sub("", cleaned, count=1)
    return cleaned.strip()


def merge_duplicate_codes(codes: List[ExtractedCode]) -> List[ExtractedCode]:
    """Collapse repeated code literals into one entry per code.

    The entry with the highest confidence wins and takes the position where
    the code first appeared.
    """

    merged: Dict[str, ExtractedCode] = {}
    for item in codes:
        current = merged.get(item.code)
        if current is None:
            merged[item.code] = item
            continue
        logger.warning("Model output repeated code %s; keeping the higher-confidence entry", item.code)
        if item.confidence > current.confidence:
            merged[item.code] = item
    return list(merged.values())


def parse_model_output(raw_text: str) -> AnalysisResult:
    """Turn raw completion text into a validated AnalysisResult.

    Raises MalformedModelOutput when the text is not a JSON object of the
    expected shape once code fences are removed.
    """

    cleaned = strip_code_fences(raw_text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise MalformedModelOutput(f"Model output is not valid JSON: {exc.msg}") from exc

    if not isinstance(data, dict):
        raise MalformedModelOutput("Model output must be a JSON object")

    try:
        output = _ModelOutput.model_validate(data)
    except ValidationError as exc:
        raise MalformedModelOutput(
            f"Model output does not match the expected shape ({exc.error_count()} errors)"
        ) from exc

    codes = tuple(
        CodeSuggestion(**item.model_dump()) for item in merge_duplicate_codes(output.codes)
    )
    return AnalysisResult(summary=output.summary, codes=codes)
