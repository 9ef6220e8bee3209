"""
Cloudflare Workers AI provider.

Calls the Workers AI REST endpoint directly with requests.
"""

import logging
from typing import List, Optional

import requests

from .base import CapabilityClass, FailureKind, Provider, ProviderError, TaskRequest, classify_status

logger = logging.getLogger(__name__)

CLOUDFLARE_API_URL = "https://api.cloudflare.com/client/v4/accounts/{account_id}/ai/run/{model}"


class CloudflareProvider(Provider):
    """Provider backed by Cloudflare Workers AI (Llama 3.2 Vision by default)."""

    def __init__(
        self,
        capability: CapabilityClass,
        account_id: Optional[str],
        api_token: Optional[str],
        models: List[str],
        max_tokens: int = 16384,
        timeout: float = 120.0,
    ):
        super().__init__(
            "cloudflare", "Cloudflare Workers AI", capability, models,
            enabled=bool(account_id and api_token),
        )
        self.account_id = account_id
        self.api_token = api_token
        self.max_tokens = max_tokens
        self.timeout = timeout

    def _call_variant(self, variant: str, request: TaskRequest) -> str:
        logger.info(f"  -> Trying {self.name} ({variant})...")

        url = CLOUDFLARE_API_URL.format(account_id=self.account_id, model=variant)
        payload = {"prompt": request.prompt, "max_tokens": self.max_tokens}
        if request.image is not None:
            payload["image"] = request.image_base64

        try:
            response = requests.post(
                url,
                headers={
                    "Authorization": f"Bearer {self.api_token}",
                    "Content-Type": "application/json",
                },
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise ProviderError(self.key, FailureKind.OTHER, str(e)) from e

        if response.status_code != 200:
            raise ProviderError(
                self.key,
                classify_status(response.status_code),
                (response.text or "")[:200],
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(self.key, FailureKind.OTHER, f"invalid JSON envelope: {e}") from e

        if not data.get("success"):
            raise ProviderError(self.key, FailureKind.OTHER, f"API reported errors: {data.get('errors')}")

        text = (data.get("result") or {}).get("response")
        if not text or not str(text).strip():
            raise ProviderError(self.key, FailureKind.OTHER, "empty response text")
        return str(text)
