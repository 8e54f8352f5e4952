"""API endpoints for per-user LLM settings."""

from fastapi import APIRouter, Depends, Request

from emailwriter.api.dependencies import get_settings_store
from emailwriter.models.user import User
from emailwriter.schemas.settings import (
    LLMSettingsEnvelope,
    LLMSettingsResponse,
    LLMSettingsUpdate,
    LLMProviderOption,
)
from emailwriter.security import get_current_user
from emailwriter.services.settings_store import SettingsStore

router = APIRouter()


@router.get("/llm", response_model=LLMSettingsEnvelope)
async def get_llm_settings(
    current_user: User = Depends(get_current_user),
    settings_store: SettingsStore = Depends(get_settings_store),
):
    """Get current user settings. API keys are reported as *_set flags only."""
    settings = await settings_store.get_or_create(current_user.id)
    return LLMSettingsEnvelope(
        message="LLM settings retrieved successfully.",
        settings=LLMSettingsResponse.from_settings(settings),
    )


@router.post("/llm", response_model=LLMSettingsEnvelope)
async def update_llm_settings(
    data: LLMSettingsUpdate,
    current_user: User = Depends(get_current_user),
    settings_store: SettingsStore = Depends(get_settings_store),
):
    """Update only the fields present in the request body."""
    await settings_store.upsert(current_user.id, data.model_dump(exclude_unset=True))
    settings = await settings_store.get_or_create(current_user.id)
    return LLMSettingsEnvelope(
        message="LLM settings updated successfully.",
        settings=LLMSettingsResponse.from_settings(settings),
    )


@router.get("/llm/providers", response_model=list[LLMProviderOption])
async def get_llm_providers(
    request: Request,
    current_user: User = Depends(get_current_user),
    settings_store: SettingsStore = Depends(get_settings_store),
):
    """List selectable providers and whether each is usable for this user."""
    settings = await settings_store.get_or_create(current_user.id)
    options = []
    for name, provider in request.app.state.providers.items():
        if name == "ollama":
            configured = bool(settings.ollama_endpoint)
        else:
            configured = settings.has_api_key(name)
        options.append(LLMProviderOption(id=name, implemented=provider.implemented, configured=configured))
    return options
