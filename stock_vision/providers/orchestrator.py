"""
Provider Orchestrator.

Serves a request from the first eligible provider of a capability class,
preferring the provider that last succeeded and benching providers that
report a terminal-class failure.
"""

import logging

from .base import CapabilityClass, FailureKind, ProviderError, TaskRequest, TaskResult
from .registry import ProviderRegistry

logger = logging.getLogger(__name__)


class AllProvidersFailedError(Exception):
    """No eligible provider of a capability class could serve the request."""

    def __init__(self, context: str, capability: CapabilityClass):
        self.context = context
        self.capability = capability
        super().__init__(f"All providers failed for {context} ({capability.value})")


class ProviderOrchestrator:
    """Multi-provider fallback over a ProviderRegistry."""

    def __init__(self, registry: ProviderRegistry):
        self.registry = registry

    def execute(self, capability: CapabilityClass, request: TaskRequest) -> TaskResult:
        """
        Return the first successful provider answer for the request.

        Args:
            capability: Capability class whose providers may serve the request
            request: Prompt and optional image, passed through unchanged

        Returns:
            TaskResult with the raw text and the provider that produced it

        Raises:
            AllProvidersFailedError: every provider is disabled, benched or failed
        """
        context = request.context or "request"

        for provider in self.registry.candidates(capability):
            if not provider.enabled or provider.failed:
                continue

            logger.info(f"[{context}] {capability.value}: attempting {provider.name}")
            try:
                text = provider.invoke(request)
            except ProviderError as e:
                self._handle_failure(context, capability, provider, e)
                continue
            except Exception as e:
                logger.exception(f"[{context}] {capability.value}: {provider.name} raised unexpectedly: {e}")
                continue

            previous = self.registry.current(capability)
            if previous is not provider:
                logger.info(f"[{context}] {capability.value}: switching to {provider.name} for subsequent requests")
                self.registry.set_current(capability, provider)
            logger.info(f"[{context}] {capability.value}: served by {provider.name} ({provider.active_model})")

            return TaskResult(
                text=text,
                provider=provider.key,
                provider_name=provider.name,
                model=provider.active_model,
                capability=capability,
            )

        logger.error(f"[{context}] {capability.value}: no provider left to try")
        raise AllProvidersFailedError(context, capability)

    def _handle_failure(self, context, capability, provider, error: ProviderError) -> None:
        if not error.benches:
            logger.warning(f"[{context}] {capability.value}: {provider.name} failed: {error}")
            return

        provider.mark_failed()
        if error.kind is FailureKind.NOT_FOUND_OR_REMOVED:
            logger.error(
                f"[{context}] {capability.value}: {provider.name} reports the model or endpoint "
                f"no longer exists, check the configuration: {error}"
            )
        logger.warning(f"[{context}] {capability.value}: {provider.name} marked as failed for this session ({error.kind.value})")
