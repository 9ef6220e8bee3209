"""
LLM providers and the fallback orchestrator.

- base: capability classes, failure classification, Provider contract
- openai_compatible / gemini / cloudflare: concrete providers
- registry: per-capability provider ordering and run state
- orchestrator: ProviderOrchestrator.execute with failover
"""

from .base import (
    CapabilityClass,
    FailureKind,
    Provider,
    ProviderError,
    TaskRequest,
    TaskResult,
    classify_status,
)
from .registry import ProviderRegistry, build_registry
from .orchestrator import AllProvidersFailedError, ProviderOrchestrator

__all__ = [
    "CapabilityClass",
    "FailureKind",
    "Provider",
    "ProviderError",
    "TaskRequest",
    "TaskResult",
    "classify_status",
    "ProviderRegistry",
    "build_registry",
    "AllProvidersFailedError",
    "ProviderOrchestrator",
]
