"""
Pydantic models for data validation and serialization.

These models are used for:
- Validating structured LLM answers (extracted data, predictions)
- The results document written by the batch driver
- Request/response validation in the API
"""

from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Literal, Optional
from datetime import datetime
import re


_CODE_RE = re.compile(r'^[A-Z0-9.\-]+$')


def _normalize_code(v: str) -> str:
    v = v.strip().upper()
    if not _CODE_RE.match(v):
        raise ValueError('Invalid stock code format')
    return v


# ===========================================
# Stock Models
# ===========================================

class Stock(BaseModel):
    """A tracked stock/ETF: identifier plus display name."""
    code: str = Field(..., min_length=1, max_length=12, description="Exchange stock code")
    name: str = Field(..., min_length=1)

    @field_validator('code')
    @classmethod
    def validate_code(cls, v: str) -> str:
        """Validate and normalize stock code."""
        return _normalize_code(v)


class StockCreate(BaseModel):
    """Model for adding a stock to the tracked list."""
    code: str = Field(..., min_length=1, max_length=12)
    name: Optional[str] = None

    @field_validator('code')
    @classmethod
    def validate_code(cls, v: str) -> str:
        return _normalize_code(v)


class StockList(BaseModel):
    """Contents of the stocks.json entity store."""
    stocks: List[Stock] = Field(default_factory=list)


# ===========================================
# Extracted Data Models
# ===========================================

class _ScrapedFields(BaseModel):
    """Base for OCR output: every scalar is kept as the string shown on the page."""

    class Config:
        populate_by_name = True
        extra = "allow"

    @field_validator('*', mode='before')
    @classmethod
    def numbers_to_text(cls, v: Any) -> Any:
        if isinstance(v, bool):
            return str(v).lower()
        if isinstance(v, (int, float)):
            return str(v)
        return v


class InvestorTrend(_ScrapedFields):
    """Net buying/selling by investor type."""
    individual: Optional[str] = None
    foreign: Optional[str] = None
    institution: Optional[str] = None


class ChartAnalysis(_ScrapedFields):
    """Daily chart reading."""
    trend: Optional[str] = None
    ma5: Optional[str] = None
    ma20: Optional[str] = None
    ma60: Optional[str] = None
    support: Optional[str] = None
    resistance: Optional[str] = None
    pattern: Optional[str] = None
    ma_alignment: Optional[str] = Field(None, alias="maAlignment")
    signal: Optional[str] = None


class ExtractedData(_ScrapedFields):
    """Fields read off a stock detail page screenshot."""
    current_price: Optional[str] = Field(None, alias="currentPrice")
    price_change: Optional[str] = Field(None, alias="priceChange")
    change_percent: Optional[str] = Field(None, alias="changePercent")
    prev_close: Optional[str] = Field(None, alias="prevClose")
    open_price: Optional[str] = Field(None, alias="openPrice")
    high_price: Optional[str] = Field(None, alias="highPrice")
    low_price: Optional[str] = Field(None, alias="lowPrice")
    volume: Optional[str] = None
    trading_value: Optional[str] = Field(None, alias="tradingValue")
    high_52week: Optional[str] = Field(None, alias="high52week")
    low_52week: Optional[str] = Field(None, alias="low52week")
    inav: Optional[str] = None
    nav: Optional[str] = None
    premium_discount: Optional[str] = Field(None, alias="premiumDiscount")
    market_cap: Optional[str] = Field(None, alias="marketCap")
    aum: Optional[str] = None
    expense_ratio: Optional[str] = Field(None, alias="expenseRatio")
    dividend_yield: Optional[str] = Field(None, alias="dividendYield")
    return_1m: Optional[str] = Field(None, alias="return1m")
    return_3m: Optional[str] = Field(None, alias="return3m")
    return_1y: Optional[str] = Field(None, alias="return1y")
    investor_trend: Optional[InvestorTrend] = Field(None, alias="investorTrend")
    chart_analysis: Optional[ChartAnalysis] = Field(None, alias="chartAnalysis")


# ===========================================
# Prediction Models
# ===========================================

PredictionLabel = Literal['Bullish', 'Bearish', 'Neutral']


def normalize_prediction(v: Any) -> str:
    """Map free-form direction labels onto Bullish/Bearish/Neutral."""
    text = str(v or "").strip().lower()
    if text in ("bullish", "up", "buy", "상승"):
        return "Bullish"
    if text in ("bearish", "down", "sell", "하락"):
        return "Bearish"
    return "Neutral"


class PredictionDetail(BaseModel):
    """Forward-looking call produced by the reasoning phase."""
    prediction: PredictionLabel = 'Neutral'
    confidence: Literal['High', 'Medium', 'Low'] = 'Medium'
    short_term_outlook: Optional[str] = None
    long_term_outlook: Optional[str] = None
    target_price: Optional[str] = None
    reasoning: Optional[str] = None

    @field_validator('prediction', mode='before')
    @classmethod
    def validate_prediction(cls, v: Any) -> str:
        return normalize_prediction(v)

    @field_validator('confidence', mode='before')
    @classmethod
    def validate_confidence(cls, v: Any) -> str:
        text = str(v or "").strip().capitalize()
        return text if text in ('High', 'Medium', 'Low') else 'Medium'

    @field_validator('short_term_outlook', 'long_term_outlook', 'target_price', 'reasoning', mode='before')
    @classmethod
    def to_text(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        if isinstance(v, (list, tuple)):
            return "\n".join(f"- {item}" for item in v)
        return str(v)


# ===========================================
# Results Document Models
# ===========================================

class PhaseProviders(BaseModel):
    """Provider key that served each phase of one stock's analysis."""
    vision: Optional[str] = None
    text: Optional[str] = None
    reasoning: Optional[str] = None


class StockAnalysis(BaseModel):
    """Per-stock record of the results document."""
    code: str
    name: str
    extracted_data: ExtractedData
    ai_report: str
    prediction: PredictionLabel = 'Neutral'
    prediction_detail: Optional[PredictionDetail] = None
    providers: PhaseProviders = Field(default_factory=PhaseProviders)
    data_validation_warnings: List[str] = Field(default_factory=list, alias="dataValidationWarnings")
    analyzed_at: datetime = Field(default_factory=datetime.now, alias="analyzedAt")
    report_path: Optional[str] = Field(None, alias="reportPath")

    class Config:
        populate_by_name = True

    @field_validator('prediction', mode='before')
    @classmethod
    def validate_prediction(cls, v: Any) -> str:
        return normalize_prediction(v)


class SkippedStock(BaseModel):
    """A stock that produced no record in this run, with the reason."""
    code: str
    name: str
    reason: str


class RunSummary(BaseModel):
    """Counts for one batch run."""
    total: int = 0
    succeeded: int = 0
    skipped: int = 0


class AnalysisResults(BaseModel):
    """The results document consumed by the dashboard."""
    last_updated: datetime = Field(default_factory=datetime.now, alias="lastUpdated")
    mode: str = "pipeline"
    providers: Dict[str, Optional[str]] = Field(default_factory=dict)
    summary: RunSummary = Field(default_factory=RunSummary)
    skipped: List[SkippedStock] = Field(default_factory=list)
    stocks: List[StockAnalysis] = Field(default_factory=list)

    class Config:
        populate_by_name = True

    def get_stock(self, code: str) -> Optional[StockAnalysis]:
        code = code.strip().upper()
        for stock in self.stocks:
            if stock.code.upper() == code:
                return stock
        return None


# ===========================================
# Settings Models
# ===========================================

class ProviderCredentialStatus(BaseModel):
    """Credential status of one provider, for display."""
    key: str
    name: str
    configured: bool = False
    masked_key: Optional[str] = None


class Settings(BaseModel):
    """Model for application settings."""
    providers: List[ProviderCredentialStatus] = Field(default_factory=list)
    provider_order: Dict[str, List[str]] = Field(default_factory=dict)
    analysis_mode: str = 'pipeline'
    request_delay_seconds: float = 1.5


class SettingsUpdate(BaseModel):
    """Model for updating settings."""
    openrouter_api_key: Optional[str] = None
    groq_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    cf_account_id: Optional[str] = None
    cf_api_token: Optional[str] = None
    analysis_mode: Optional[Literal['pipeline', 'combined']] = None
    request_delay_seconds: Optional[float] = Field(None, ge=0, le=60)
    vision_provider_order: Optional[List[str]] = None
    text_provider_order: Optional[List[str]] = None
    reasoning_provider_order: Optional[List[str]] = None


# ===========================================
# Background Task Models
# ===========================================

class AnalyzeTaskRequest(BaseModel):
    """Request to run a batch analysis; code selects single-stock mode."""
    code: Optional[str] = None
    name: Optional[str] = None

    @field_validator('code')
    @classmethod
    def validate_code(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return _normalize_code(v)


class TaskStatus(BaseModel):
    """Model for background task status."""
    task_id: str
    status: Literal['pending', 'running', 'completed', 'failed', 'cancelled']
    progress: Optional[float] = None
    message: Optional[str] = None
    result: Optional[dict] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


# ===========================================
# API Response Models
# ===========================================

class APIResponse(BaseModel):
    """Generic API response model."""
    success: bool
    message: Optional[str] = None
    data: Optional[dict] = None
