"""
Shared test fixtures.

Providers are replaced by FakeProvider, which answers from a script instead
of calling a remote API.
"""

import json
from typing import Any, List

import pytest

from stock_vision.config import AppConfig
from stock_vision.providers import (
    CapabilityClass,
    FailureKind,
    Provider,
    ProviderError,
    ProviderOrchestrator,
    ProviderRegistry,
    TaskRequest,
)


class FakeProvider(Provider):
    """
    Provider that replays scripted outcomes.

    Each entry of `script` is either a string (returned as the answer), a
    FailureKind (raised as ProviderError) or an Exception instance (raised
    as-is). The last entry repeats once the script runs out.
    """

    def __init__(self, key, capability=CapabilityClass.TEXT, script=None, enabled=True, variants=None):
        super().__init__(key, key.title(), capability, variants or [f"{key}-model"], enabled=enabled)
        self.script: List[Any] = list(script or [f"answer from {key}"])
        self.calls: List[TaskRequest] = []
        self.variant_calls: List[Any] = []

    def _next(self):
        if len(self.script) > 1:
            return self.script.pop(0)
        return self.script[0]

    def _call_variant(self, variant, request):
        self.calls.append(request)
        self.variant_calls.append(variant)
        outcome = self._next()
        if isinstance(outcome, FailureKind):
            raise ProviderError(self.key, outcome, f"scripted {outcome.value}")
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def make_registry(*providers) -> ProviderRegistry:
    registry = ProviderRegistry()
    for provider in providers:
        registry.register(provider)
    return registry


def make_orchestrator(*providers) -> ProviderOrchestrator:
    return ProviderOrchestrator(make_registry(*providers))


EXTRACTED = {
    "currentPrice": "24,772",
    "priceChange": "-120",
    "changePercent": "-0.48%",
    "prevClose": "24,892",
    "openPrice": "24,850",
    "highPrice": "24,900",
    "lowPrice": "24,700",
    "volume": "3,123,456",
    "tradingValue": "77,400",
    "marketCap": "5210900000000",
    "investorTrend": {"individual": "+433048", "foreign": "-12000", "institution": "-421048"},
    "chartAnalysis": {"trend": "uptrend", "ma5": "24,600", "maAlignment": "bullish", "signal": "hold"},
}

PREDICTION = {
    "prediction": "Bullish",
    "confidence": "High",
    "short_term_outlook": "24,500 - 25,300",
    "long_term_outlook": "Uptrend intact",
    "target_price": "26,000",
    "reasoning": ["Foreign buying", "Price above MA20"],
}

REPORT = "## Technical Analysis\nPrice holds above the 20-day average."


def vision_answer(data=None) -> str:
    return "```json\n" + json.dumps(data or EXTRACTED, ensure_ascii=False) + "\n```"


def prediction_answer(data=None) -> str:
    return json.dumps(data or PREDICTION)


def combined_answer(code="069500", name="KODEX 200") -> str:
    return json.dumps({
        "code": code,
        "name": name,
        "extracted_data": EXTRACTED,
        "ai_report": REPORT,
        "prediction": "bearish",
    }, ensure_ascii=False)


@pytest.fixture
def app_config(tmp_path) -> AppConfig:
    """Configuration pointing every path into a temporary directory."""
    return AppConfig(
        data_dir=tmp_path / "data",
        screenshots_dir=tmp_path / "screenshots",
        public_data_dir=tmp_path / "public" / "data",
        reports_dir=tmp_path / "reports",
        request_delay_seconds=0,
    )


@pytest.fixture
def write_screenshot(app_config):
    def _write(code: str) -> None:
        app_config.screenshots_dir.mkdir(parents=True, exist_ok=True)
        (app_config.screenshots_dir / f"{code}.png").write_bytes(b"\x89PNG fake image")
    return _write
