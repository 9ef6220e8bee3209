"""
Provider registry.

Holds, per capability class, the providers in fixed priority order plus the
run state: which provider most recently succeeded.
"""

import logging
from typing import Dict, List, Optional

from ..config import AppConfig
from .base import CapabilityClass, Provider
from .cloudflare import CloudflareProvider
from .gemini import GeminiProvider
from .openai_compatible import create_groq_provider, create_openrouter_provider

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Ordered mapping from provider key to Provider, one per capability class."""

    def __init__(self):
        self._providers: Dict[CapabilityClass, Dict[str, Provider]] = {
            capability: {} for capability in CapabilityClass
        }
        self._current: Dict[CapabilityClass, Optional[str]] = {
            capability: None for capability in CapabilityClass
        }

    def register(self, provider: Provider) -> None:
        """Append a provider at the lowest priority of its capability class."""
        providers = self._providers[provider.capability]
        if provider.key in providers:
            raise ValueError(
                f"Provider {provider.key!r} already registered for {provider.capability.value}"
            )
        providers[provider.key] = provider

    def providers(self, capability: CapabilityClass) -> List[Provider]:
        """Providers for a capability class in configured priority order."""
        return list(self._providers[capability].values())

    def get(self, capability: CapabilityClass, key: str) -> Optional[Provider]:
        return self._providers[capability].get(key)

    def current(self, capability: CapabilityClass) -> Optional[Provider]:
        key = self._current[capability]
        return self._providers[capability].get(key) if key else None

    def set_current(self, capability: CapabilityClass, provider: Provider) -> None:
        if self._providers[capability].get(provider.key) is not provider:
            raise ValueError(f"Provider {provider.key!r} is not registered for {capability.value}")
        self._current[capability] = provider.key

    def candidates(self, capability: CapabilityClass) -> List[Provider]:
        """
        Priority order with the last-successful provider moved to the front.

        The current provider is only promoted while it is still eligible.
        """
        order = self.providers(capability)
        current = self.current(capability)
        if current is not None and current.eligible:
            order.remove(current)
            order.insert(0, current)
        return order

    def current_keys(self) -> Dict[str, Optional[str]]:
        """Provider key most recently used per capability class."""
        return {capability.value: key for capability, key in self._current.items()}

    def status(self) -> Dict[str, List[dict]]:
        """Snapshot of every provider's flags, grouped by capability class."""
        return {
            capability.value: [
                {
                    "key": p.key,
                    "name": p.name,
                    "enabled": p.enabled,
                    "failed": p.failed,
                    "current": self._current[capability] == p.key,
                }
                for p in self.providers(capability)
            ]
            for capability in CapabilityClass
        }

    def log_status(self) -> None:
        logger.info("=== Provider Status ===")
        for capability in CapabilityClass:
            for p in self.providers(capability):
                state = "enabled" if p.enabled else "disabled"
                logger.info(f"[{capability.value}] {p.name}: {state}")


def _create_provider(key: str, capability: CapabilityClass, config: AppConfig) -> Optional[Provider]:
    common = {"timeout": config.request_timeout}

    if key == "openrouter":
        models = {
            CapabilityClass.VISION: config.openrouter_vision_models,
            CapabilityClass.TEXT: config.openrouter_text_models,
            CapabilityClass.REASONING: config.openrouter_reasoning_models,
        }[capability]
        return create_openrouter_provider(
            capability, config.openrouter_api_key, models,
            temperature=config.temperature, max_tokens=config.max_output_tokens, **common,
        )

    if key == "groq":
        models = {
            CapabilityClass.VISION: config.groq_vision_models,
            CapabilityClass.TEXT: config.groq_text_models,
            CapabilityClass.REASONING: config.groq_reasoning_models,
        }[capability]
        return create_groq_provider(
            capability, config.groq_api_key, models,
            temperature=config.temperature, max_tokens=config.max_output_tokens, **common,
        )

    if key == "gemini":
        return GeminiProvider(
            capability, config.gemini_api_keys, model=config.gemini_model,
            temperature=config.temperature, max_output_tokens=config.max_output_tokens, **common,
        )

    if key == "cloudflare":
        if capability is not CapabilityClass.VISION:
            logger.warning(f"Cloudflare provider only serves vision requests, ignored for {capability.value}")
            return None
        return CloudflareProvider(
            capability, config.cf_account_id, config.cf_api_token,
            config.cloudflare_vision_models, max_tokens=config.max_output_tokens, **common,
        )

    logger.warning(f"Unknown provider {key!r} in {capability.value} order, ignored")
    return None


def build_registry(config: AppConfig) -> ProviderRegistry:
    """Create every configured provider, enabled according to credential presence."""
    registry = ProviderRegistry()
    for capability in CapabilityClass:
        for key in config.provider_order.get(capability.value, []):
            if registry.get(capability, key) is not None:
                continue
            provider = _create_provider(key, capability, config)
            if provider is not None:
                registry.register(provider)
    return registry
