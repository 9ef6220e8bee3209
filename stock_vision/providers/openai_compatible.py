"""
OpenAI-compatible chat completion providers.

OpenRouter and Groq both expose the OpenAI chat completions API, so they are
served by the `openai` SDK pointed at a different base URL.
"""

import logging
from typing import Dict, List, Optional

import openai
from openai import OpenAI

from .base import CapabilityClass, FailureKind, Provider, ProviderError, TaskRequest, classify_status

logger = logging.getLogger(__name__)

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
GROQ_BASE_URL = "https://api.groq.com/openai/v1"


class OpenAICompatibleProvider(Provider):
    """Provider backed by an OpenAI-compatible chat completions endpoint."""

    def __init__(
        self,
        key: str,
        name: str,
        capability: CapabilityClass,
        api_key: Optional[str],
        base_url: str,
        models: List[str],
        temperature: float = 0.2,
        max_tokens: int = 16384,
        timeout: float = 120.0,
        extra_headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(key, name, capability, models, enabled=bool(api_key))
        self.api_key = api_key
        self.base_url = base_url
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.extra_headers = extra_headers or {}
        self._client: Optional[OpenAI] = None

    def _get_client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=0,
                default_headers=self.extra_headers or None,
            )
        return self._client

    def _build_messages(self, request: TaskRequest) -> list:
        if request.image is None:
            return [{"role": "user", "content": request.prompt}]
        return [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": request.prompt},
                    {"type": "image_url", "image_url": {"url": request.image_data_url}},
                ],
            }
        ]

    def _call_variant(self, variant: str, request: TaskRequest) -> str:
        logger.info(f"  -> Trying {self.name} ({variant})...")
        try:
            response = self._get_client().chat.completions.create(
                model=variant,
                messages=self._build_messages(request),
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except openai.APIStatusError as e:
            kind = classify_status(e.status_code, getattr(e, "code", None))
            raise ProviderError(self.key, kind, e.message, status_code=e.status_code) from e
        except openai.APIError as e:
            # Connection errors and timeouts carry no status
            raise ProviderError(self.key, FailureKind.OTHER, str(e)) from e

        if not response.choices:
            raise ProviderError(self.key, FailureKind.OTHER, "response contained no choices")

        content = response.choices[0].message.content
        if not content or not content.strip():
            raise ProviderError(self.key, FailureKind.OTHER, "empty response content")
        return content


def create_openrouter_provider(
    capability: CapabilityClass,
    api_key: Optional[str],
    models: List[str],
    **kwargs,
) -> OpenAICompatibleProvider:
    """OpenRouter provider (free Gemini/DeepSeek routes by default)."""
    return OpenAICompatibleProvider(
        key="openrouter",
        name="OpenRouter",
        capability=capability,
        api_key=api_key,
        base_url=OPENROUTER_BASE_URL,
        models=models,
        extra_headers={"X-Title": "Stock Vision"},
        **kwargs,
    )


def create_groq_provider(
    capability: CapabilityClass,
    api_key: Optional[str],
    models: List[str],
    **kwargs,
) -> OpenAICompatibleProvider:
    """Groq provider (Llama vision/text and distilled reasoning models)."""
    return OpenAICompatibleProvider(
        key="groq",
        name="Groq",
        capability=capability,
        api_key=api_key,
        base_url=GROQ_BASE_URL,
        models=models,
        **kwargs,
    )
