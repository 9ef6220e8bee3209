"""
Settings API endpoints.

Provides endpoints for managing provider credentials and batch options.
Credentials live in the .env file, never in the results document.
"""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel
import os
from dotenv import load_dotenv, set_key

from .. import config as app_config
from ..config import DEFAULT_PROVIDER_ORDER, is_placeholder_key, load_config, mask_api_key
from ..providers.openai_compatible import GROQ_BASE_URL, OPENROUTER_BASE_URL
from ..storage.models import APIResponse, ProviderCredentialStatus, Settings, SettingsUpdate

router = APIRouter()


class TestAPIRequest(BaseModel):
    """Request for testing API connection."""
    provider: str
    api_key: str


def _credential(name: str) -> str:
    value = os.getenv(name, "")
    return "" if is_placeholder_key(value) else value


@router.get("", response_model=Settings)
async def get_settings():
    """Get current provider credential status and batch options."""
    config = load_config(app_config.ENV_PATH)

    openrouter_key = _credential("OPENROUTER_API_KEY")
    groq_key = _credential("GROQ_API_KEY")
    gemini_key = config.gemini_api_keys[0] if config.gemini_api_keys else ""
    cf_token = _credential("CF_API_TOKEN")

    providers = [
        ProviderCredentialStatus(
            key="openrouter", name="OpenRouter",
            configured=bool(openrouter_key), masked_key=mask_api_key(openrouter_key) or None,
        ),
        ProviderCredentialStatus(
            key="gemini", name="Gemini API",
            configured=bool(config.gemini_api_keys), masked_key=mask_api_key(gemini_key) or None,
        ),
        ProviderCredentialStatus(
            key="groq", name="Groq",
            configured=bool(groq_key), masked_key=mask_api_key(groq_key) or None,
        ),
        ProviderCredentialStatus(
            key="cloudflare", name="Cloudflare Workers AI",
            configured=bool(config.cf_account_id and config.cf_api_token),
            masked_key=mask_api_key(cf_token) or None,
        ),
    ]

    return Settings(
        providers=providers,
        provider_order=config.provider_order,
        analysis_mode=config.analysis_mode,
        request_delay_seconds=config.request_delay_seconds,
    )


@router.put("", response_model=APIResponse)
async def update_settings(settings: SettingsUpdate):
    """Update provider credentials and batch options."""
    env_path = app_config.ENV_PATH
    try:
        # Ensure .env exists
        if not env_path.exists():
            env_path.touch()

        values = {
            "OPENROUTER_API_KEY": settings.openrouter_api_key,
            "GROQ_API_KEY": settings.groq_api_key,
            "GEMINI_API_KEY": settings.gemini_api_key,
            "CF_ACCOUNT_ID": settings.cf_account_id,
            "CF_API_TOKEN": settings.cf_api_token,
            "ANALYSIS_MODE": settings.analysis_mode,
            "VISION_PROVIDER_ORDER": ",".join(settings.vision_provider_order) if settings.vision_provider_order else None,
            "TEXT_PROVIDER_ORDER": ",".join(settings.text_provider_order) if settings.text_provider_order else None,
            "REASONING_PROVIDER_ORDER": ",".join(settings.reasoning_provider_order) if settings.reasoning_provider_order else None,
        }
        if settings.request_delay_seconds is not None:
            values["REQUEST_DELAY_SECONDS"] = str(settings.request_delay_seconds)

        for key, value in values.items():
            if value:
                set_key(str(env_path), key, value)

        # Reload environment
        load_dotenv(env_path, override=True)

        return APIResponse(success=True, message="Settings saved successfully")

    except OSError as e:
        raise HTTPException(status_code=500, detail=f"Failed to save settings: {str(e)}")


@router.post("/test-api", response_model=APIResponse)
async def test_api_connection(request: TestAPIRequest):
    """Test a provider API key by listing its models."""
    provider = request.provider.lower()
    api_key = request.api_key

    if not api_key:
        raise HTTPException(status_code=400, detail="API key is required")

    if provider in ("openrouter", "groq"):
        import openai
        base_url = OPENROUTER_BASE_URL if provider == "openrouter" else GROQ_BASE_URL
        try:
            client = openai.OpenAI(api_key=api_key, base_url=base_url, max_retries=0)
            response = client.models.list()
            return APIResponse(
                success=True,
                message=f"{provider} API connection successful",
                data={"models_available": len(response.data)}
            )
        except openai.AuthenticationError:
            return APIResponse(success=False, message="Invalid API key")
        except openai.APIError as e:
            return APIResponse(success=False, message=f"Connection failed: {e}")

    elif provider == "gemini":
        import google.generativeai as genai
        from google.api_core import exceptions as google_exceptions
        try:
            genai.configure(api_key=api_key)
            models = list(genai.list_models())
            return APIResponse(
                success=True,
                message="Gemini API connection successful",
                data={"models_available": len(models)}
            )
        except (google_exceptions.Unauthenticated, google_exceptions.PermissionDenied):
            return APIResponse(success=False, message="Invalid API key")
        except google_exceptions.GoogleAPIError as e:
            return APIResponse(success=False, message=f"Connection failed: {e}")

    else:
        raise HTTPException(status_code=400, detail=f"Unknown provider: {provider}")


@router.post("/reset", response_model=APIResponse)
async def reset_settings():
    """Reset batch options to defaults (credentials are kept)."""
    env_path = app_config.ENV_PATH
    try:
        defaults = {
            "ANALYSIS_MODE": "pipeline",
            "REQUEST_DELAY_SECONDS": "1.5",
            "VISION_PROVIDER_ORDER": ",".join(DEFAULT_PROVIDER_ORDER["vision"]),
            "TEXT_PROVIDER_ORDER": ",".join(DEFAULT_PROVIDER_ORDER["text"]),
            "REASONING_PROVIDER_ORDER": ",".join(DEFAULT_PROVIDER_ORDER["reasoning"]),
        }

        if not env_path.exists():
            env_path.touch()
        for key, value in defaults.items():
            set_key(str(env_path), key, value)

        # Reload environment
        load_dotenv(env_path, override=True)

        return APIResponse(success=True, message="Settings reset to defaults")

    except OSError as e:
        raise HTTPException(status_code=500, detail=f"Failed to reset settings: {str(e)}")
