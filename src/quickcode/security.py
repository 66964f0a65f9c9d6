from __future__ import annotations

import hashlib
from contextvars import ContextVar
from typing import FrozenSet, Optional

from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader

from src.quickcode.config import settings

API_KEY_HEADER = "X-API-Key"

_api_key_header = APIKeyHeader(name=API_KEY_HEADER, auto_error=False)

# Hashed caller id for the request in flight; audit events read it.
_caller: ContextVar[Optional[str]] = ContextVar("quickcode_caller", default=None)


def get_current_subject() -> Optional[str]:
    """Hashed id of the coder calling the API, or None when auth is off."""
    return _caller.get()


def subject_for_api_key(api_key: str) -> str:
    """Derive the audit subject for a key. The raw key never reaches the logs."""
    digest = hashlib.sha256(api_key.encode("utf-8")).hexdigest()
    return f"api-key:{digest[:16]}"


def _allowed_keys() -> FrozenSet[str]:
    if not settings.api_keys:
        return frozenset()
    return frozenset(key.strip() for key in settings.api_keys.split(",") if key.strip())


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


async def get_api_key(api_key: Optional[str] = Security(_api_key_header)) -> str:
    """Router dependency guarding the coding endpoints.

    With ENABLE_API_AUTH unset every caller is let through anonymously. When it
    is set, the X-API-Key header must carry one of the API_KEYS entries, and an
    empty API_KEYS list locks the API rather than opening it.
    """

    if not settings.enable_api_auth:
        _caller.set(None)
        return ""

    allowed = _allowed_keys()
    if not allowed:
        raise _unauthorized("API authentication is enabled but no API keys are configured.")
    if not api_key or api_key not in allowed:
        raise _unauthorized("Invalid or missing API key.")

    _caller.set(subject_for_api_key(api_key))
    return api_key
