from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional, Union
from uuid import UUID, uuid4

from src.quickcode.domain.errors import (
    ExtractionError,
    InvalidInput,
    InvalidStatusTransition,
    UnknownCode,
)
from src.quickcode.domain.models.code_suggestion import AnalysisResult, CodeStatus, CodeSuggestion
from src.quickcode.domain.models.conflict import ConflictOutcome
from src.quickcode.domain.models.export_receipt import ExportReceipt
from src.quickcode.domain.models.review_session import ReviewSessionState
from src.quickcode.services.conflicts.checker import ConflictChecker, conflict_checker
from src.quickcode.services.export.sink import InMemoryExportSink, export_sink
from src.quickcode.services.extraction.gateway import ExtractionGateway, extraction_gateway

logger = logging.getLogger("review")

EMPTY_NOTE_MESSAGE = "Please paste a clinical note to analyze."
ANALYSIS_FAILED_MESSAGE = "Failed to analyze the note. Please try again."

_REVIEW_OUTCOMES = {CodeStatus.ACCEPTED, CodeStatus.REJECTED}


class ReviewSession:
    """State machine for one note-review session.

    Owns the suggestion list and its per-code statuses. Every code starts as
    ``suggested`` and moves once to ``accepted`` or ``rejected``; both are
    terminal. Two counters keep asynchronous results honest:

    - ``generation`` tags each analysis request, so a slow response from a
      superseded request never overwrites a newer one;
    - the review revision changes on every status change or new analysis, so
      a conflict check finishing after the accepted set changed is dropped.
    """

    def __init__(
        self,
        *,
        gateway: ExtractionGateway | None = None,
        checker: ConflictChecker | None = None,
        sink: InMemoryExportSink | None = None,
        session_id: UUID | None = None,
    ) -> None:
        self.id: UUID = session_id or uuid4()
        self.created_at = datetime.now(timezone.utc)
        self._gateway = gateway or extraction_gateway
        self._checker = checker or conflict_checker
        self._sink = sink or export_sink

        self._codes: List[CodeSuggestion] = []
        self._summary = ""
        self._conflict_result: Optional[ConflictOutcome] = None
        self._error: Optional[str] = None

        self._generation = 0
        self._pending_generation: Optional[int] = None
        self._review_revision = 0
        self._checks_in_flight = 0

    @property
    def busy(self) -> bool:
        """True while the latest analysis request is outstanding."""
        return self._pending_generation is not None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def summary(self) -> str:
        return self._summary

    @property
    def codes(self) -> List[CodeSuggestion]:
        return list(self._codes)

    @property
    def conflict_result(self) -> Optional[ConflictOutcome]:
        return self._conflict_result

    @property
    def error(self) -> Optional[str]:
        return self._error

    async def start_analysis(self, note: str) -> Optional[AnalysisResult]:
        """Replace the session contents with a fresh analysis of ``note``.

        Prior results are cleared before the gateway is awaited. Returns the
        result, or ``None`` when a newer request superseded this one. Gateway
        failures are recorded as a user-visible message and re-raised.
        """

        self._generation += 1
        generation = self._generation
        self._reset_results()
        self._pending_generation = generation

        try:
            result = await self._gateway.analyze(note)
        except ExtractionError as exc:
            if generation != self._generation:
                logger.info("Discarding failure from superseded analysis generation=%d", generation)
                return None
            self._error = EMPTY_NOTE_MESSAGE if isinstance(exc, InvalidInput) else ANALYSIS_FAILED_MESSAGE
            logger.warning("Analysis failed for session=%s: %s", self.id, type(exc).__name__)
            raise
        finally:
            if self._pending_generation == generation:
                self._pending_generation = None

        if generation != self._generation:
            logger.info("Discarding result from superseded analysis generation=%d", generation)
            return None

        self._codes = [item.model_copy(deep=True) for item in result.codes]
        self._summary = result.summary
        logger.info("Session=%s loaded %d suggestion(s)", self.id, len(self._codes))
        return result

    def set_status(self, code: str, new_status: Union[CodeStatus, str]) -> CodeSuggestion:
        """Record a reviewer decision for ``code``.

        Re-applying a code's current decision is a no-op; reversing a decision
        is refused. Any accepted call invalidates the stored conflict outcome.
        """

        try:
            status = CodeStatus(new_status)
        except ValueError:
            raise InvalidStatusTransition(f"Unknown status '{new_status}'") from None
        if status not in _REVIEW_OUTCOMES:
            raise InvalidStatusTransition("Codes can only be marked accepted or rejected")

        entry = self._find(code)
        if entry.status != CodeStatus.SUGGESTED and entry.status != status:
            raise InvalidStatusTransition(
                f"Code {code} is already {entry.status.value}; re-run analysis to change it"
            )

        entry.status = status
        self._invalidate_conflict_result()
        return entry

    def accepted_codes(self) -> List[CodeSuggestion]:
        return [item for item in self._codes if item.status == CodeStatus.ACCEPTED]

    async def run_conflict_check(self) -> Optional[ConflictOutcome]:
        """Check the current accepted set and store the outcome.

        Returns ``None`` without storing anything when a status change or new
        analysis happened while the check was outstanding.
        """

        revision = self._review_revision
        accepted = self.accepted_codes()
        self._conflict_result = None
        self._checks_in_flight += 1
        try:
            outcome = await self._checker.check(accepted)
        finally:
            self._checks_in_flight -= 1

        if revision != self._review_revision:
            logger.info("Discarding conflict result for session=%s; accepted set changed", self.id)
            return None

        self._conflict_result = outcome
        return outcome

    def export(self) -> ExportReceipt:
        return self._sink.export(self.accepted_codes())

    def clear(self) -> None:
        """Drop all session state; in-flight results will be discarded."""

        self._generation += 1
        self._pending_generation = None
        self._reset_results()

    def snapshot(self) -> ReviewSessionState:
        return ReviewSessionState(
            id=self.id,
            created_at=self.created_at,
            summary=self._summary,
            codes=[item.model_copy(deep=True) for item in self._codes],
            conflict_result=self._conflict_result,
            conflict_check_pending=self._checks_in_flight > 0,
            busy=self.busy,
            error=self._error,
            generation=self._generation,
        )

    def _find(self, code: str) -> CodeSuggestion:
        for item in self._codes:
            if item.code == code:
                return item
        raise UnknownCode(f"No suggestion with code {code} in this session")

    def _reset_results(self) -> None:
        self._codes = []
        self._summary = ""
        self._error = None
        self._invalidate_conflict_result()

    def _invalidate_conflict_result(self) -> None:
        self._conflict_result = None
        self._review_revision += 1
