"""LLM provider adapters used by the email generator.

Each adapter knows how to build the upstream HTTP request for a prompt and
how to pull the generated text back out of the response. Network I/O lives
in ``OutboundHttpClient``; adapters only shape data.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from emailwriter.config import Settings
from emailwriter.exceptions import ConfigMissing, ProviderUnsupported, ResponseUnparseable
from emailwriter.models.settings import LLM_PROVIDERS
from emailwriter.services.settings_store import LLMSettings


@dataclass
class ProviderRequest:
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: dict[str, Any] = field(default_factory=dict)
    method: str = "POST"


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    name: str
    implemented = True

    @property
    def tag(self) -> str:
        """Value stored in history ``llm_used`` for this provider."""
        return self.name

    @abstractmethod
    def build_request(self, prompt: str, settings: LLMSettings) -> ProviderRequest:
        """Build the upstream request. Raises ConfigMissing if the user has not configured the provider."""

    @abstractmethod
    def parse_response(self, data: Any) -> str:
        """Extract generated text from a successful response. Raises ResponseUnparseable."""

    def error_message(self, data: Any) -> str:
        """Best-effort error text from an error response body."""
        if isinstance(data, dict):
            error = data.get("error")
            if isinstance(error, dict) and error.get("message"):
                return str(error["message"])
            if isinstance(error, str) and error:
                return error
        if isinstance(data, str) and data:
            return data[:500]
        return "no error details returned"


class OllamaProvider(LLMProvider):
    """Local Ollama server, non-streaming /api/generate."""

    name = "ollama"

    def __init__(self, model: str = "llama3"):
        self.model = model

    @property
    def tag(self) -> str:
        return f"ollama_{self.model}"

    def build_request(self, prompt: str, settings: LLMSettings) -> ProviderRequest:
        endpoint = settings.ollama_endpoint
        if not endpoint:
            raise ConfigMissing("Ollama endpoint is not configured.")
        return ProviderRequest(
            url=endpoint.rstrip("/") + "/api/generate",
            headers={"Content-Type": "application/json"},
            body={"model": self.model, "prompt": prompt, "stream": False},
        )

    def parse_response(self, data: Any) -> str:
        if isinstance(data, dict) and isinstance(data.get("response"), str):
            return data["response"]
        raise ResponseUnparseable(self.name, "missing 'response' field")


class OpenAIProvider(LLMProvider):
    """OpenAI-compatible chat completions."""

    name = "openai"

    def __init__(self, model: str = "gpt-3.5-turbo", url: str = "https://api.openai.com/v1/chat/completions", temperature: float = 0.7):
        self.model = model
        self.url = url
        self.temperature = temperature

    @property
    def tag(self) -> str:
        return f"openai_{self.model}"

    def build_request(self, prompt: str, settings: LLMSettings) -> ProviderRequest:
        api_key = settings.api_key(self.name)
        if not api_key:
            raise ConfigMissing("OpenAI API key is not configured.")
        return ProviderRequest(
            url=self.url,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {api_key}",
            },
            body={
                "model": self.model,
                "messages": [{"role": "user", "content": prompt}],
                "temperature": self.temperature,
            },
        )

    def parse_response(self, data: Any) -> str:
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            raise ResponseUnparseable(self.name, "missing choices[0].message.content")
        if not isinstance(content, str):
            raise ResponseUnparseable(self.name, "message content is not text")
        return content


class UnimplementedProvider(LLMProvider):
    """A provider users may select but that cannot be called yet."""

    implemented = False

    def __init__(self, name: str):
        self.name = name

    def build_request(self, prompt: str, settings: LLMSettings) -> ProviderRequest:
        raise ProviderUnsupported(self.name)

    def parse_response(self, data: Any) -> str:
        raise ProviderUnsupported(self.name)


def build_provider_registry(config: Settings) -> dict[str, LLMProvider]:
    """One adapter per entry in LLM_PROVIDERS."""
    registry: dict[str, LLMProvider] = {
        "ollama": OllamaProvider(model=config.ollama_default_model),
        "openai": OpenAIProvider(
            model=config.openai_default_model,
            url=config.openai_api_url,
            temperature=config.openai_temperature,
        ),
    }
    for name in LLM_PROVIDERS:
        registry.setdefault(name, UnimplementedProvider(name))
    return registry


def get_llm_provider(registry: dict[str, LLMProvider], provider_name: str) -> LLMProvider:
    """
    Look up a provider adapter by name.

    Raises:
        ProviderUnsupported: for names outside LLM_PROVIDERS.
    """
    provider = registry.get(provider_name)
    if provider is None:
        raise ProviderUnsupported(provider_name)
    return provider
