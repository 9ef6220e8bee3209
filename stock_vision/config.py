"""
Application configuration.

Settings are read from environment variables, with a project-level .env file
loaded first (existing environment variables win).
"""

import os
import logging
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

# Get project root directory
PROJECT_ROOT = Path(__file__).parent.parent
ENV_PATH = PROJECT_ROOT / ".env"

DEFAULT_PROVIDER_ORDER: Dict[str, List[str]] = {
    "vision": ["openrouter", "gemini", "groq", "cloudflare"],
    "text": ["openrouter", "groq", "gemini"],
    "reasoning": ["groq", "openrouter", "gemini"],
}


def is_placeholder_key(key: Optional[str]) -> bool:
    """Check if an API key looks like a placeholder."""
    if not key:
        return True
    placeholder_patterns = [
        "your-", "your_", "placeholder", "example",
        "xxx", "sk-xxx", "enter-", "insert-", "add-your-"
    ]
    key_lower = key.lower()
    return any(pattern in key_lower for pattern in placeholder_patterns)


def mask_api_key(key: Optional[str]) -> str:
    """Mask an API key for display."""
    if not key or len(key) < 8:
        return ""
    return f"{key[:4]}...{key[-4:]}"


def _get_key(name: str) -> Optional[str]:
    value = (os.getenv(name) or "").strip()
    if is_placeholder_key(value):
        return None
    return value


def _get_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if not raw:
        return list(default)
    items = [item.strip() for item in raw.split(",") if item.strip()]
    return items or list(default)


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid value for {name}: {raw!r}")
        return default
    return value if value >= 0 else default


def _get_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    return Path(raw) if raw else default


class AppConfig(BaseModel):
    """Resolved application configuration."""

    # Credentials
    openrouter_api_key: Optional[str] = None
    gemini_api_keys: List[str] = Field(default_factory=list)
    groq_api_key: Optional[str] = None
    cf_account_id: Optional[str] = None
    cf_api_token: Optional[str] = None

    # Models per provider and capability class
    openrouter_vision_models: List[str] = ["google/gemini-2.0-flash-exp:free"]
    openrouter_text_models: List[str] = ["google/gemini-2.0-flash-exp:free"]
    openrouter_reasoning_models: List[str] = ["deepseek/deepseek-r1:free"]
    gemini_model: str = "gemini-2.5-flash"
    groq_vision_models: List[str] = ["llama-3.2-90b-vision-preview"]
    groq_text_models: List[str] = ["llama-3.3-70b-versatile"]
    groq_reasoning_models: List[str] = ["deepseek-r1-distill-llama-70b", "qwen-qwq-32b"]
    cloudflare_vision_models: List[str] = ["@cf/meta/llama-3.2-11b-vision-instruct"]

    # Fallback order per capability class
    provider_order: Dict[str, List[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_PROVIDER_ORDER.items()}
    )

    # Call parameters
    temperature: float = 0.2
    max_output_tokens: int = 16384
    request_timeout: float = 120.0
    request_delay_seconds: float = 1.5

    # Batch
    analysis_mode: str = "pipeline"
    target_stock_code: Optional[str] = None
    target_stock_name: Optional[str] = None

    # Paths
    data_dir: Path = PROJECT_ROOT / "data"
    screenshots_dir: Path = PROJECT_ROOT / "public" / "screenshots"
    public_data_dir: Path = PROJECT_ROOT / "public" / "data"
    reports_dir: Path = PROJECT_ROOT / "reports"

    @property
    def stocks_path(self) -> Path:
        return self.data_dir / "stocks.json"

    @property
    def results_path(self) -> Path:
        return self.data_dir / "analysis_results.json"

    @property
    def public_results_path(self) -> Path:
        return self.public_data_dir / "analysis_results.json"


def load_config(env_path: Optional[Path] = None) -> AppConfig:
    """Load configuration from the .env file and the process environment."""
    load_dotenv(env_path or ENV_PATH)

    gemini_keys = [
        key for key in (
            _get_key("GEMINI_API_KEY_01"),
            _get_key("GEMINI_API_KEY_02"),
            _get_key("GEMINI_API_KEY_03"),
            _get_key("GEMINI_API_KEY") or _get_key("GOOGLE_API_KEY"),
        )
        if key
    ]
    # Same key configured twice should not be retried twice
    gemini_keys = list(dict.fromkeys(gemini_keys))

    defaults = AppConfig()
    mode = (os.getenv("ANALYSIS_MODE") or "pipeline").strip().lower()
    if mode not in ("pipeline", "combined"):
        logger.warning(f"Unknown ANALYSIS_MODE {mode!r}, using 'pipeline'")
        mode = "pipeline"

    return AppConfig(
        openrouter_api_key=_get_key("OPENROUTER_API_KEY"),
        gemini_api_keys=gemini_keys,
        groq_api_key=_get_key("GROQ_API_KEY"),
        cf_account_id=_get_key("CF_ACCOUNT_ID"),
        cf_api_token=_get_key("CF_API_TOKEN"),
        openrouter_vision_models=_get_list("OPENROUTER_VISION_MODELS", defaults.openrouter_vision_models),
        openrouter_text_models=_get_list("OPENROUTER_TEXT_MODELS", defaults.openrouter_text_models),
        openrouter_reasoning_models=_get_list("OPENROUTER_REASONING_MODELS", defaults.openrouter_reasoning_models),
        gemini_model=os.getenv("GEMINI_MODEL", defaults.gemini_model),
        groq_vision_models=_get_list("GROQ_VISION_MODELS", defaults.groq_vision_models),
        groq_text_models=_get_list("GROQ_TEXT_MODELS", defaults.groq_text_models),
        groq_reasoning_models=_get_list("GROQ_REASONING_MODELS", defaults.groq_reasoning_models),
        cloudflare_vision_models=_get_list("CLOUDFLARE_VISION_MODELS", defaults.cloudflare_vision_models),
        provider_order={
            "vision": _get_list("VISION_PROVIDER_ORDER", DEFAULT_PROVIDER_ORDER["vision"]),
            "text": _get_list("TEXT_PROVIDER_ORDER", DEFAULT_PROVIDER_ORDER["text"]),
            "reasoning": _get_list("REASONING_PROVIDER_ORDER", DEFAULT_PROVIDER_ORDER["reasoning"]),
        },
        temperature=_get_float("LLM_TEMPERATURE", defaults.temperature),
        max_output_tokens=int(_get_float("LLM_MAX_OUTPUT_TOKENS", defaults.max_output_tokens)),
        request_timeout=_get_float("LLM_HTTP_TIMEOUT", defaults.request_timeout),
        request_delay_seconds=_get_float("REQUEST_DELAY_SECONDS", defaults.request_delay_seconds),
        analysis_mode=mode,
        target_stock_code=(os.getenv("TARGET_STOCK_CODE") or "").strip().upper() or None,
        target_stock_name=(os.getenv("TARGET_STOCK_NAME") or "").strip() or None,
        data_dir=_get_path("DATA_DIR", defaults.data_dir),
        screenshots_dir=_get_path("SCREENSHOTS_DIR", defaults.screenshots_dir),
        public_data_dir=_get_path("PUBLIC_DATA_DIR", defaults.public_data_dir),
        reports_dir=_get_path("REPORTS_DIR", defaults.reports_dir),
    )


def get_config() -> AppConfig:
    """FastAPI dependency returning freshly loaded configuration."""
    return load_config()
