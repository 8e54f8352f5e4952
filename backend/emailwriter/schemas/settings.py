"""Schemas for the LLM settings API."""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from emailwriter.models.settings import API_KEY_FIELDS
from emailwriter.services.settings_store import LLMSettings

PROVIDER_PATTERN = "^(ollama|openai|claude|gemini|groq|cohere)$"


class LLMSettingsUpdate(BaseModel):
    """Sparse update. Omitted fields are left alone; an API key sent as "" or null is removed."""
    preferred_llm: Optional[str] = Field(None, pattern=PROVIDER_PATTERN)
    ollama_endpoint: Optional[str] = Field(None, max_length=500)
    openai_api_key: Optional[str] = None
    claude_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    groq_api_key: Optional[str] = None
    cohere_api_key: Optional[str] = None


class LLMSettingsResponse(BaseModel):
    """Client-safe settings: API keys are reported only as present or absent."""
    id: Optional[int] = None
    user_id: int
    preferred_llm: str
    ollama_endpoint: Optional[str] = None
    updated_at: Optional[datetime] = None
    openai_api_key_set: bool = False
    claude_api_key_set: bool = False
    gemini_api_key_set: bool = False
    groq_api_key_set: bool = False
    cohere_api_key_set: bool = False

    @classmethod
    def from_settings(cls, settings: LLMSettings) -> "LLMSettingsResponse":
        flags = {
            f"{column}_set": settings.has_api_key(provider)
            for provider, column in API_KEY_FIELDS.items()
        }
        return cls(
            id=settings.id,
            user_id=settings.user_id,
            preferred_llm=settings.preferred_llm,
            ollama_endpoint=settings.ollama_endpoint,
            updated_at=settings.updated_at,
            **flags,
        )


class LLMSettingsEnvelope(BaseModel):
    message: str
    settings: LLMSettingsResponse


class LLMProviderOption(BaseModel):
    """LLM provider option for UI."""
    id: str
    implemented: bool
    configured: bool
