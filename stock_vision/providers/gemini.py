"""
Google Gemini provider.

Rotates over several API keys: each key is one variant of the provider's
internal fallback, and the key that last worked is used first.
"""

import logging
from typing import List

from google.api_core import exceptions as google_exceptions

from .base import CapabilityClass, FailureKind, Provider, ProviderError, TaskRequest, classify_status

logger = logging.getLogger(__name__)


class GeminiProvider(Provider):
    """Provider backed by the Gemini API via google-generativeai."""

    def __init__(
        self,
        capability: CapabilityClass,
        api_keys: List[str],
        model: str = "gemini-2.5-flash",
        temperature: float = 0.2,
        max_output_tokens: int = 16384,
        timeout: float = 120.0,
    ):
        super().__init__("gemini", "Gemini API", capability, api_keys)
        self.model = model
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.timeout = timeout

    def variant_label(self, index: int) -> str:
        return f"key #{index + 1}"

    @property
    def active_model(self) -> str:
        return self.model

    def _call_variant(self, variant: str, request: TaskRequest) -> str:
        import google.generativeai as genai

        logger.info(f"  -> Trying {self.name} ({self.model}, {self.variant_label(self.variants.index(variant))})...")

        try:
            genai.configure(api_key=variant)
            model = genai.GenerativeModel(self.model)

            parts: list = [request.prompt]
            if request.image is not None:
                parts.append({"mime_type": request.mime_type, "data": request.image})

            response = model.generate_content(
                parts,
                generation_config=genai.types.GenerationConfig(
                    temperature=self.temperature,
                    top_k=40,
                    top_p=0.95,
                    max_output_tokens=self.max_output_tokens,
                ),
                request_options={"timeout": self.timeout},
            )
            text = response.text
        except google_exceptions.GoogleAPICallError as e:
            status = int(e.code) if e.code is not None else None
            raise ProviderError(self.key, classify_status(status), e.message or str(e), status_code=status) from e
        except (ValueError, google_exceptions.GoogleAPIError) as e:
            # ValueError: response was blocked or carried no text part
            raise ProviderError(self.key, FailureKind.OTHER, str(e)) from e

        if not text or not text.strip():
            raise ProviderError(self.key, FailureKind.OTHER, "empty response text")
        return text
