"""
Investment Analyst Agents.

The report agent turns extracted page data into a narrative markdown report
(text providers); the prediction agent makes a forward-looking call from the
data and the report (reasoning providers).
"""

import json
import logging
from typing import Tuple

from pydantic import ValidationError

from ..providers import CapabilityClass, ProviderOrchestrator, TaskRequest, TaskResult
from ..storage.models import ExtractedData, PredictionDetail, Stock
from ..utils.json_utils import (
    ResponseParseError,
    parse_json_response,
    strip_reasoning_tags,
    unwrap_code_fence,
)

logger = logging.getLogger(__name__)


def _data_block(data: ExtractedData) -> str:
    return json.dumps(
        data.model_dump(by_alias=True, exclude_none=True),
        ensure_ascii=False,
        indent=2,
    )


class ReportAnalystAgent:
    """Agent for writing the narrative analysis report."""

    PROMPT = """You are a professional ETF/stock analyst.

Below is data read from the Naver Finance page of "{name}" (code: {code}):

{data}

Write a comprehensive analysis report in markdown. Cover:
- Daily chart pattern (trend, support/resistance, pattern, moving averages)
- Premium/discount to NAV
- Return trend (1 month / 3 months / 1 year)
- Investor flows (individual, foreign, institution)
- Volume and trading value

Use exactly these sections:
## Technical Analysis
## Fundamental Analysis
## Return Analysis
## Supply/Demand Analysis
## Short-term Outlook (1 week)
## Long-term Outlook (1 month+)
## Positive Factors
## Negative Factors
## Investment Cautions

Cite actual numbers from the data. Output only the markdown report."""

    def __init__(self, orchestrator: ProviderOrchestrator):
        self.orchestrator = orchestrator

    def build_prompt(self, stock: Stock, data: ExtractedData) -> str:
        return self.PROMPT.format(name=stock.name, code=stock.code, data=_data_block(data))

    def generate_report(self, stock: Stock, data: ExtractedData) -> Tuple[str, TaskResult]:
        """
        Generate the markdown report for one stock.

        Raises:
            AllProvidersFailedError: no text provider could serve the request
            ResponseParseError: the answer was empty
        """
        request = TaskRequest(prompt=self.build_prompt(stock, data), context=stock.name)
        result = self.orchestrator.execute(CapabilityClass.TEXT, request)

        report = unwrap_code_fence(strip_reasoning_tags(result.text))
        if not report:
            raise ResponseParseError(f"[{stock.name}] report answer was empty")
        return report, result


class PredictionAgent:
    """Agent for the forward-looking prediction."""

    PROMPT = """You are an investment strategist. Reason carefully about the data and the
analyst report below, then make a short-term directional call for "{name}" ({code}).

EXTRACTED DATA:
{data}

ANALYST REPORT:
{report}

You MUST respond with valid JSON in exactly this format:
{{
    "prediction": "Bullish" | "Bearish" | "Neutral",
    "confidence": "High" | "Medium" | "Low",
    "short_term_outlook": "expected price range over the next week and why",
    "long_term_outlook": "trend view for the next month or more, with a target",
    "target_price": "target price as shown on the page, or null",
    "reasoning": "key drivers in bullet points, using - for each point"
}}"""

    def __init__(self, orchestrator: ProviderOrchestrator):
        self.orchestrator = orchestrator

    def build_prompt(self, stock: Stock, data: ExtractedData, report: str) -> str:
        return self.PROMPT.format(
            name=stock.name, code=stock.code, data=_data_block(data), report=report
        )

    def predict(self, stock: Stock, data: ExtractedData, report: str) -> Tuple[PredictionDetail, TaskResult]:
        """
        Produce the prediction for one stock.

        Raises:
            AllProvidersFailedError: no reasoning provider could serve the request
            ResponseParseError: the answer did not contain the expected JSON
        """
        request = TaskRequest(prompt=self.build_prompt(stock, data, report), context=stock.name)
        result = self.orchestrator.execute(CapabilityClass.REASONING, request)

        payload = parse_json_response(result.text, stock.name)
        try:
            prediction = PredictionDetail.model_validate(payload)
        except ValidationError as e:
            raise ResponseParseError(f"[{stock.name}] prediction failed validation: {e}") from e

        logger.info(f"[{stock.name}] Prediction: {prediction.prediction} ({prediction.confidence})")
        return prediction, result
