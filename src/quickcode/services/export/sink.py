from __future__ import annotations

import json
import logging
from collections import deque
from datetime import datetime, timezone
from typing import Deque, List, Optional, Sequence
from uuid import uuid4

from src.quickcode.config import settings
from src.quickcode.domain.errors import NothingToExport
from src.quickcode.domain.models.code_suggestion import CodeSuggestion
from src.quickcode.domain.models.export_receipt import ExportReceipt

logger = logging.getLogger("export")

NOTHING_TO_EXPORT_MESSAGE = "No codes have been accepted for export."


class InMemoryExportSink:
    """Terminal hand-off point for finalized codes.

    Accepted codes are appended to an in-process billing queue and logged.
    What the downstream claims system does with them is outside this service.
    Only the most recent ``history_limit`` receipts are retained.
    """

    def __init__(self, *, history_limit: Optional[int] = None) -> None:
        limit = settings.export_history_limit if history_limit is None else history_limit
        self._receipts: Deque[ExportReceipt] = deque(maxlen=max(limit, 1))

    def export(self, accepted_codes: Sequence[CodeSuggestion]) -> ExportReceipt:
        if not accepted_codes:
            raise NothingToExport(NOTHING_TO_EXPORT_MESSAGE)

        receipt = ExportReceipt(
            id=uuid4(),
            submitted_at=datetime.now(timezone.utc),
            codes=[item.model_copy(deep=True) for item in accepted_codes],
        )
        self._receipts.append(receipt)

        logger.info("--- EXPORTING TO BILLING QUEUE --- receipt=%s", receipt.id)
        logger.info(json.dumps([item.model_dump(mode="json") for item in receipt.codes], indent=2))
        return receipt

    def submitted(self) -> List[ExportReceipt]:
        return list(self._receipts)


export_sink = InMemoryExportSink()
