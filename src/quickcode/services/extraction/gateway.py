from __future__ import annotations

import logging
from typing import Any

from src.quickcode.domain.errors import ExtractionError, InvalidInput, MalformedModelOutput, ServiceUnavailable
from src.quickcode.domain.models.code_suggestion import AnalysisResult
from src.quickcode.services.extraction.backends import CompletionBackend, get_completion_backend_from_env
from src.quickcode.services.extraction.parsing import parse_model_output
from src.quickcode.services.extraction.prompts import build_extraction_prompt

logger = logging.getLogger("extraction")

INVALID_NOTE_MESSAGE = "Clinical note is required and must be a non-empty string."


class ExtractionGateway:
    """Turn a free-text clinical note into a validated AnalysisResult.

    Each call makes at most one request to the completion backend and either
    returns a complete result or raises an ExtractionError subclass:

    - InvalidInput when the note is missing or blank (no provider call);
    - ServiceUnavailable when the provider call fails;
    - MalformedModelOutput when the answer is empty or not the expected JSON.
    """

    def __init__(self, *, backend: CompletionBackend | None = None) -> None:
        self._backend: CompletionBackend = backend or get_completion_backend_from_env()

    async def analyze(self, note: Any) -> AnalysisResult:
        if not isinstance(note, str) or not note.strip():
            raise InvalidInput(INVALID_NOTE_MESSAGE)

        logger.info("Received request to analyze note (length=%d)", len(note))
        prompt = build_extraction_prompt(note)

        try:
            raw_text = await self._backend.complete(prompt)
        except ExtractionError:
            logger.exception("Completion backend failed")
            raise
        except Exception as exc:
            logger.exception("Completion backend failed")
            raise ServiceUnavailable(f"Completion backend failed: {exc}") from exc

        if not raw_text or not raw_text.strip():
            logger.error("Completion backend returned no text")
            raise MalformedModelOutput("Model returned an empty response")

        logger.info("Model response received, parsing JSON")
        try:
            result = parse_model_output(raw_text)
        except MalformedModelOutput:
            logger.exception("Model response could not be parsed")
            raise

        logger.info("Extracted %d code suggestion(s)", len(result.codes))
        return result


# Default singleton instance used by API routes.
extraction_gateway = ExtractionGateway()
