"""
Provider contracts.

A provider is one remote LLM backend serving a single capability class.
Concrete providers implement `_call_variant`; the base class handles the
nested fallback over the provider's own variants (models or API keys) and
normalizes failures into `ProviderError`.
"""

import base64
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional

logger = logging.getLogger(__name__)


class CapabilityClass(str, Enum):
    """Kinds of request a group of providers can serve."""
    VISION = "vision"
    TEXT = "text"
    REASONING = "reasoning"


class FailureKind(str, Enum):
    """Effect-based classification of a provider failure."""
    RATE_LIMITED = "rate_limited"
    SERVICE_UNAVAILABLE = "service_unavailable"
    NOT_FOUND_OR_REMOVED = "not_found_or_removed"
    EXHAUSTED = "exhausted"
    OTHER = "other"

    @property
    def benches(self) -> bool:
        """Whether this failure takes the provider out for the rest of the run."""
        return self is not FailureKind.OTHER


REMOVED_ERROR_CODES = frozenset({"model_not_found", "model_decommissioned"})


def classify_status(status_code: Optional[int], error_code: Optional[str] = None) -> FailureKind:
    """Map an HTTP-like status (and optional structured error code) to a FailureKind."""
    if error_code and error_code in REMOVED_ERROR_CODES:
        return FailureKind.NOT_FOUND_OR_REMOVED
    if status_code == 429:
        return FailureKind.RATE_LIMITED
    if status_code == 503:
        return FailureKind.SERVICE_UNAVAILABLE
    if status_code in (404, 410):
        return FailureKind.NOT_FOUND_OR_REMOVED
    return FailureKind.OTHER


class ProviderError(Exception):
    """A normalized failure raised by a provider call."""

    def __init__(
        self,
        provider: str,
        kind: FailureKind,
        message: str,
        status_code: Optional[int] = None,
    ):
        self.provider = provider
        self.kind = kind
        self.status_code = status_code
        self.message = message
        status = f" ({status_code})" if status_code is not None else ""
        super().__init__(f"{provider}: {kind.value}{status} - {message}")

    @property
    def benches(self) -> bool:
        return self.kind.benches


@dataclass
class TaskRequest:
    """Prompt plus optional image, forwarded verbatim to a provider."""
    prompt: str
    context: str = ""
    image: Optional[bytes] = None
    mime_type: str = "image/png"

    @property
    def image_base64(self) -> Optional[str]:
        if self.image is None:
            return None
        return base64.b64encode(self.image).decode("ascii")

    @property
    def image_data_url(self) -> Optional[str]:
        encoded = self.image_base64
        if encoded is None:
            return None
        return f"data:{self.mime_type};base64,{encoded}"


@dataclass
class TaskResult:
    """Raw text returned by whichever provider served the request."""
    text: str
    provider: str
    provider_name: str
    model: str
    capability: CapabilityClass


class Provider(ABC):
    """
    Base class for a remote capability provider.

    `variants` is the provider's internal fallback list (model names, or API
    keys for providers that rotate keys). The variant that last worked is
    tried first; variants that fail with a benching error are skipped for the
    rest of the run.
    """

    def __init__(
        self,
        key: str,
        name: str,
        capability: CapabilityClass,
        variants: List[Any],
        enabled: Optional[bool] = None,
    ):
        self.key = key
        self.name = name
        self.capability = capability
        self.variants = list(variants)
        self.enabled = bool(self.variants) if enabled is None else (enabled and bool(self.variants))
        self.failed = False
        self._current_variant: Optional[int] = None
        self._failed_variants: set = set()

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(key={self.key!r}, capability={self.capability.value}, "
            f"enabled={self.enabled}, failed={self.failed})"
        )

    @property
    def eligible(self) -> bool:
        return self.enabled and not self.failed

    def mark_failed(self) -> None:
        """Bench this provider for the remainder of the run."""
        self.failed = True

    def variant_label(self, index: int) -> str:
        """Human-readable name of a variant, safe to log."""
        return str(self.variants[index])

    @property
    def active_model(self) -> str:
        index = self._current_variant if self._current_variant is not None else 0
        return self.variant_label(index) if self.variants else ""

    def _variant_order(self) -> List[int]:
        order = list(range(len(self.variants)))
        current = self._current_variant
        if current is not None and current not in self._failed_variants:
            order.remove(current)
            order.insert(0, current)
        return [i for i in order if i not in self._failed_variants]

    def invoke(self, request: TaskRequest) -> str:
        """
        Run the request, falling back across this provider's variants.

        Raises:
            ProviderError: when no variant produced an answer
        """
        last_error: Optional[ProviderError] = None

        for index in self._variant_order():
            label = self.variant_label(index)
            try:
                text = self._call_variant(self.variants[index], request)
            except ProviderError as e:
                last_error = e
                if e.benches and len(self.variants) > 1:
                    self._failed_variants.add(index)
                    logger.warning(f"  {self.name} [{label}] benched: {e}")
                else:
                    logger.warning(f"  {self.name} [{label}] failed: {e}")
                continue

            if self._current_variant != index and len(self.variants) > 1:
                logger.info(f"  {self.name}: using {label} for subsequent requests")
            self._current_variant = index
            return text

        if len(self.variants) == 1 and last_error is not None:
            raise last_error
        raise ProviderError(
            self.key,
            FailureKind.EXHAUSTED,
            f"all {len(self.variants)} variants exhausted"
            + (f" (last error: {last_error.message})" if last_error else ""),
        )

    @abstractmethod
    def _call_variant(self, variant: Any, request: TaskRequest) -> str:
        """Perform one remote call; must raise ProviderError on any failure."""
