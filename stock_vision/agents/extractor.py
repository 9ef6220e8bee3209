"""
Vision Extractor Agent.

Sends a stock detail page screenshot to a vision provider and reads the
price table, ETF metrics, investor flows and daily chart out of it. The
combined variant asks for the extraction, the report and the prediction in
one call.
"""

import json
import logging
from typing import Any, Tuple

from pydantic import ValidationError

from ..providers import CapabilityClass, ProviderOrchestrator, TaskRequest, TaskResult
from ..storage.models import ExtractedData, Stock, StockAnalysis, PhaseProviders
from ..utils.json_utils import ResponseParseError, parse_json_response

logger = logging.getLogger(__name__)


EXTRACTED_DATA_TEMPLATE = {
    "currentPrice": "current price",
    "priceChange": "change vs previous close",
    "changePercent": "change percent",
    "prevClose": "previous close (전일)",
    "openPrice": "open (시가)",
    "highPrice": "high (고가)",
    "lowPrice": "low (저가)",
    "volume": "volume (거래량)",
    "tradingValue": "trading value (대금)",
    "high52week": "52-week high",
    "low52week": "52-week low",
    "inav": "iNAV",
    "nav": "NAV",
    "premiumDiscount": "premium/discount (괴리율)",
    "marketCap": "market cap",
    "aum": "assets under management",
    "expenseRatio": "total expense ratio (총보수)",
    "dividendYield": "dividend yield",
    "return1m": "1-month return",
    "return3m": "3-month return",
    "return1y": "1-year return",
    "investorTrend": {
        "individual": "individual net buy/sell",
        "foreign": "foreign net buy/sell",
        "institution": "institution net buy/sell",
    },
    "chartAnalysis": {
        "trend": "Up | Down | Sideways",
        "ma5": "5-day MA estimate or null",
        "ma20": "20-day MA estimate or null",
        "ma60": "60-day MA estimate or null",
        "support": "support price",
        "resistance": "resistance price",
        "pattern": "chart pattern name",
        "maAlignment": "Bullish alignment | Bearish alignment | Converging",
        "signal": "Buy | Sell | Hold",
    },
}


EXTRACTION_INSTRUCTIONS = """[Role] You are a professional ETF/stock analyst and a precise data extraction specialist.

[Task]
This image is the Naver Finance detail page of "{name}" (code: {code}).

**Table extraction rules (very important):**
1. Label-value mapping: the number directly next to or below a label is that label's value.
   - "전일" -> prevClose, "시가" -> openPrice, "고가" -> highPrice, "저가" -> lowPrice
2. The price table is laid out as:
   | 전일 [v1] | 시가 [v2] | 고가 [v3] |
   | 저가 [v4] | 거래량 [v5] | 대금 [v6] |
   Assign only the number beside each label to that field.
3. Read digits one by one, check comma positions for the magnitude and never drop the first digit.
4. Sanity check after extraction:
   - low <= open <= high and low <= current <= high in normal conditions
   - previous close and open may legitimately differ

**Also read the daily candle chart** for trend, moving averages (5/20/60), support,
resistance, pattern (golden cross, dead cross, triangle, wedge, box range, breakout,
breakdown...), moving-average alignment and a buy/sell/hold signal.
"""


def _read_extracted_data(payload: Any, stock: Stock) -> ExtractedData:
    """Validate OCR fields; an answer without a current price is not an extraction."""
    if not isinstance(payload, dict):
        raise ResponseParseError(f"[{stock.name}] answer has no extracted data object")
    try:
        data = ExtractedData.model_validate(payload)
    except ValidationError as e:
        raise ResponseParseError(f"[{stock.name}] extracted data failed validation: {e}") from e

    if not (data.current_price or "").strip():
        raise ResponseParseError(f"[{stock.name}] extracted data has no current price")
    return data


class VisionExtractorAgent:
    """Agent for OCR-style extraction from stock page screenshots."""

    OUTPUT_FORMAT = """Return ONLY a JSON object in exactly this structure, with no other text:
{template}
Use null for any value that is not visible on the page."""

    def __init__(self, orchestrator: ProviderOrchestrator):
        self.orchestrator = orchestrator

    def build_prompt(self, stock: Stock) -> str:
        template = json.dumps(EXTRACTED_DATA_TEMPLATE, ensure_ascii=False, indent=2)
        return (
            EXTRACTION_INSTRUCTIONS.format(name=stock.name, code=stock.code)
            + "\n"
            + self.OUTPUT_FORMAT.format(template=template)
        )

    def extract(self, stock: Stock, image: bytes) -> Tuple[ExtractedData, TaskResult]:
        """
        Extract page data for one stock.

        Raises:
            AllProvidersFailedError: no vision provider could serve the request
            ResponseParseError: the answer did not contain the expected JSON
        """
        request = TaskRequest(prompt=self.build_prompt(stock), context=stock.name, image=image)
        result = self.orchestrator.execute(CapabilityClass.VISION, request)

        payload = parse_json_response(result.text, stock.name)
        # Some models wrap the fields the way the combined prompt does
        if isinstance(payload.get("extracted_data"), dict):
            payload = payload["extracted_data"]

        data = _read_extracted_data(payload, stock)

        logger.info(f"[{stock.name}] Extracted - Price: {data.current_price}")
        return data, result


class CombinedAnalysisAgent:
    """Single vision call producing extraction, report and prediction together."""

    REPORT_SECTIONS = """[Report guidelines]
Write a comprehensive markdown report based on everything you extracted, with these sections:
## Technical Analysis
## Fundamental Analysis
## Return Analysis
## Supply/Demand Analysis
## Short-term Outlook (1 week)
## Long-term Outlook (1 month+)
## Positive Factors
## Negative Factors
## Investment Cautions
"""

    def __init__(self, orchestrator: ProviderOrchestrator):
        self.orchestrator = orchestrator

    def build_prompt(self, stock: Stock) -> str:
        structure = {
            "code": stock.code,
            "name": stock.name,
            "extracted_data": EXTRACTED_DATA_TEMPLATE,
            "ai_report": "AI analysis report (markdown)",
            "prediction": "Bullish | Bearish | Neutral",
        }
        return (
            EXTRACTION_INSTRUCTIONS.format(name=stock.name, code=stock.code)
            + "\n"
            + self.REPORT_SECTIONS
            + "\nReturn ONLY a JSON object in exactly this structure, with no other text:\n"
            + json.dumps(structure, ensure_ascii=False, indent=2)
        )

    def analyze(self, stock: Stock, image: bytes) -> StockAnalysis:
        """
        Run the whole analysis for one stock in a single vision call.

        Raises:
            AllProvidersFailedError: no vision provider could serve the request
            ResponseParseError: the answer did not contain the expected JSON
        """
        request = TaskRequest(prompt=self.build_prompt(stock), context=stock.name, image=image)
        result = self.orchestrator.execute(CapabilityClass.VISION, request)
        payload = parse_json_response(result.text, stock.name)

        report = payload.get("ai_report")
        if not isinstance(report, str) or not report.strip():
            raise ResponseParseError(f"[{stock.name}] combined answer has no ai_report")

        try:
            analysis = StockAnalysis(
                code=stock.code,
                name=stock.name,
                extracted_data=_read_extracted_data(payload.get("extracted_data"), stock),
                ai_report=report.strip(),
                prediction=payload.get("prediction"),
                providers=PhaseProviders(
                    vision=result.provider, text=result.provider, reasoning=result.provider
                ),
            )
        except ValidationError as e:
            raise ResponseParseError(f"[{stock.name}] combined answer failed validation: {e}") from e

        logger.info(f"[{stock.name}] Done - Price: {analysis.extracted_data.current_price}")
        return analysis
