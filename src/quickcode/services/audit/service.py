from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from src.quickcode.security import get_current_subject

logger = logging.getLogger("audit")


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class AuditEvent:
    """One reviewer or system action on a note or review session.

    Carries ids, codes and counts only. Note text and summaries stay out.
    """

    action: str
    resource_type: str
    resource_id: Optional[str] = None
    subject: Optional[str] = None
    extra: Optional[Dict[str, Any]] = None
    timestamp: str = field(default_factory=_utc_now)

    def to_json(self) -> str:
        # default=str covers UUIDs and enums passed in extra.
        return json.dumps(asdict(self), default=str)


class AuditService:
    """Writes audit events as single JSON lines to the ``audit`` logger."""

    def log_event(
        self,
        *,
        action: str,
        resource_type: str,
        resource_id: Optional[str] = None,
        subject: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> AuditEvent:
        event = AuditEvent(
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            subject=subject if subject is not None else get_current_subject(),
            extra=extra,
        )
        logger.info(event.to_json())
        return event


audit_service = AuditService()
