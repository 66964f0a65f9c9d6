from __future__ import annotations

import json
import logging
from typing import List, Optional, Protocol

from src.quickcode.config import settings
from src.quickcode.domain.errors import ProviderConfigurationError, ServiceUnavailable

logger = logging.getLogger("extraction")


class CompletionBackend(Protocol):
    """Protocol for the external text-completion service.

    Implementations take a prompt string and return the model's raw text.
    Provider and network failures should surface as ServiceUnavailable.
    """

    async def complete(self, prompt: str) -> str:  # pragma: no cover - interface
        raise NotImplementedError


# Keyword -> (code, type, description, confidence) used by the demo backend.
_DEMO_CODE_TABLE = [
    ("diabetes", ("E11.9", "ICD-10", "Type 2 diabetes mellitus without complications", 0.95)),
    ("hypertension", ("I10", "ICD-10", "Essential (primary) hypertension", 0.9)),
    ("shortness of breath", ("R06.02", "ICD-10", "Shortness of breath", 0.75)),
    ("echocardiogram", ("93306", "CPT", "Transthoracic echocardiography, complete", 0.7)),
    ("follow-up", ("99214", "CPT", "Office visit, established patient, moderate complexity", 0.65)),
    ("preventive", ("99396", "CPT", "Periodic preventive medicine visit, age 40-64", 0.55)),
]


class DemoCompletionBackend:
    """Deterministic, offline completion backend used for tests and local runs.

    It only looks at the note section of the prompt and maps a handful of
    keywords to fixed codes. The answer is wrapped in a ```json fence the way
    hosted models often reply, so the sanitizer is exercised on every call.
    """

    async def complete(self, prompt: str) -> str:
        note = _note_from_prompt(prompt).lower()
        codes: List[dict] = []
        for keyword, (code, code_type, description, confidence) in _DEMO_CODE_TABLE:
            if keyword in note:
                codes.append(
                    {
                        "code": code,
                        "type": code_type,
                        "description": description,
                        "confidence": confidence,
                    }
                )

        if codes:
            summary = f"Visit documenting {len(codes)} codable finding(s)."
        else:
            summary = "Visit with no codable findings identified."

        payload = json.dumps({"summary": summary, "codes": codes}, indent=2)
        return f"```json\n{payload}\n```"


def _note_from_prompt(prompt: str) -> str:
    start = prompt.find("Note:\n")
    end = prompt.rfind("Provide the output")
    if start == -1 or end == -1 or end < start:
        return prompt
    return prompt[start + len("Note:\n"):end]


class OpenAICompletionBackend:
    """Completion backend using the OpenAI chat completions API.

    Requires OPENAI_API_KEY and uses the model name from LLM_MODEL.
    """

    def __init__(
        self,
        model: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self._model = model or settings.llm_model
        self._api_key = api_key or settings.openai_api_key
        if not self._api_key:
            raise ProviderConfigurationError("OPENAI_API_KEY must be set to use OpenAICompletionBackend")
        self._timeout = timeout if timeout is not None else settings.llm_timeout_seconds
        self._client = None

    def _get_client(self):
        if self._client is None:
            try:
                from openai import AsyncOpenAI
            except ImportError as exc:  # pragma: no cover - depends on external lib
                raise ProviderConfigurationError(
                    "OpenAICompletionBackend requires the 'openai' package. Install it with 'pip install openai'"
                ) from exc
            self._client = AsyncOpenAI(api_key=self._api_key, timeout=self._timeout)
        return self._client

    async def complete(self, prompt: str) -> str:  # pragma: no cover - external service
        from openai import OpenAIError

        client = self._get_client()
        try:
            response = await client.chat.completions.create(
                model=self._model,
                messages=[{"role": "user", "content": prompt}],
                temperature=0.0,
            )
        except OpenAIError as exc:
            raise ServiceUnavailable(f"OpenAI request failed: {exc}") from exc

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""


class GeminiCompletionBackend:
    """Completion backend using Google's Gemini API.

    Requires GEMINI_API_KEY and the optional 'google-generativeai' package.
    """

    def __init__(self, model_name: str | None = None, api_key: str | None = None) -> None:
        self._model_name = model_name or settings.gemini_model
        self._api_key = api_key or settings.gemini_api_key
        if not self._api_key:
            raise ProviderConfigurationError("GEMINI_API_KEY must be set to use GeminiCompletionBackend")
        self._model = None

    def _get_model(self):
        if self._model is None:
            try:
                import google.generativeai as genai
            except ImportError as exc:  # pragma: no cover - depends on external lib
                raise ProviderConfigurationError(
                    "GeminiCompletionBackend requires the 'google-generativeai' package. "
                    "Install it with 'pip install google-generativeai'"
                ) from exc
            genai.configure(api_key=self._api_key)
            self._model = genai.GenerativeModel(self._model_name)
        return self._model

    async def complete(self, prompt: str) -> str:  # pragma: no cover - external service
        from google.api_core.exceptions import GoogleAPIError

        model = self._get_model()
        try:
            response = await model.generate_content_async(prompt)
        except GoogleAPIError as exc:
            raise ServiceUnavailable(f"Gemini request failed: {exc}") from exc

        try:
            return response.text
        except ValueError:
            # Blocked or empty candidates have no text accessor.
            return ""


_CREDENTIAL_ENV = {
    "openai": ("OPENAI_API_KEY", "openai_api_key"),
    "gemini": ("GEMINI_API_KEY", "gemini_api_key"),
}


def ensure_provider_configured(backend_name: Optional[str] = None) -> None:
    """Raise ProviderConfigurationError when the selected provider lacks a key.

    Called from the application startup hook so a missing credential stops
    the process instead of failing every request.
    """

    name = (backend_name or settings.extraction_backend).lower()
    if name == "demo":
        return
    if name not in _CREDENTIAL_ENV:
        raise ProviderConfigurationError(
            f"Unknown EXTRACTION_BACKEND '{name}'; expected one of demo, openai, gemini"
        )
    env_name, attr = _CREDENTIAL_ENV[name]
    if not getattr(settings, attr):
        raise ProviderConfigurationError(f"{env_name} is not set; it is required for EXTRACTION_BACKEND={name}")


def get_completion_backend_from_env() -> CompletionBackend:
    """Select a completion backend based on EXTRACTION_BACKEND.

    - "gemini" (default): GeminiCompletionBackend
    - "openai": OpenAICompletionBackend
    - "demo": deterministic keyword-based answers, opt-in only
    """

    ensure_provider_configured()
    backend_name = settings.extraction_backend.lower()
    if backend_name == "openai":
        return OpenAICompletionBackend()
    if backend_name == "gemini":
        return GeminiCompletionBackend()
    return DemoCompletionBackend()
