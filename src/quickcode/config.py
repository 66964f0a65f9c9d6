from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

DEFAULT_EXTRACTION_BACKEND = "gemini"


@dataclass
class Settings:
    """Centralized application settings.

    This keeps environment-variable handling in one place so other modules can
    depend on strongly-typed attributes instead of calling os.getenv
    directly.
    """

    # Completion backend used by the extraction gateway: "gemini" (default),
    # "openai" or "demo". "demo" answers offline from a keyword table and must
    # be selected explicitly.
    extraction_backend: str = field(
        default_factory=lambda: os.getenv("EXTRACTION_BACKEND", DEFAULT_EXTRACTION_BACKEND)
    )

    # Provider credentials. The one matching EXTRACTION_BACKEND is required at
    # startup.
    openai_api_key: Optional[str] = os.getenv("OPENAI_API_KEY")
    llm_model: str = os.getenv("LLM_MODEL", "gpt-4.1-mini")
    llm_timeout_seconds: float = float(os.getenv("LLM_TIMEOUT_SECONDS", "60"))
    gemini_api_key: Optional[str] = os.getenv("GEMINI_API_KEY")
    gemini_model: str = os.getenv("GEMINI_MODEL", "gemini-1.5-flash")

    # Artificial latency for the conflict check, in milliseconds. Stands in
    # for a remote rules engine lookup.
    conflict_check_delay_ms: int = int(os.getenv("CONFLICT_CHECK_DELAY_MS", "0"))

    # Optional JSON or JSONL file with extra pairwise conflict rules, records
    # shaped {"codes": ["99214", "99396"], "reason": "..."}.
    conflict_rules_path: Optional[Path] = (
        Path(os.getenv("CONFLICT_RULES_PATH")) if os.getenv("CONFLICT_RULES_PATH") else None
    )

    # Receipts kept in memory for inspection; older ones are dropped first.
    export_history_limit: int = int(os.getenv("EXPORT_HISTORY_LIMIT", "100"))

    # Review sessions untouched for this long are dropped from the registry.
    session_idle_timeout_seconds: float = float(os.getenv("SESSION_IDLE_TIMEOUT_SECONDS", "3600"))

    # Basic API authentication configuration.
    # When ENABLE_API_AUTH=true, protected endpoints require a valid API key.
    enable_api_auth: bool = os.getenv("ENABLE_API_AUTH", "false").lower() == "true"
    # Comma-separated list of allowed API keys when auth is enabled.
    api_keys: Optional[str] = os.getenv("API_KEYS")

    # CORS configuration: comma-separated origins. Default is "*" which is
    # acceptable for local development only.
    cors_allow_origins: str = os.getenv("CORS_ALLOW_ORIGINS", "*")

    log_level: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
