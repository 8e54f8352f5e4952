"""Turns a user's raw notes into an email body using their preferred LLM provider."""

import logging
from dataclasses import dataclass
from typing import Optional

from emailwriter.exceptions import AppError, DatabaseError, ProviderError, ProviderCallFailed, SettingsUnavailable
from emailwriter.services.history import HistoryRecorder
from emailwriter.services.http_client import OutboundHttpClient
from emailwriter.services.llm_providers import LLMProvider, get_llm_provider
from emailwriter.services.settings_store import LLMSettings, SettingsStore

logger = logging.getLogger(__name__)

FAILURE_SUFFIX = "_error"

PROMPT_TEMPLATE = """You are an expert email writer. Transform the following raw thoughts into a well-crafted email with a {tone} tone.

Raw thoughts: "{raw_thoughts}"{context}

Instructions:
- Write a complete, professional email body
- Use a {tone} tone throughout
- Make it clear, engaging, and well-structured
- Ensure proper email etiquette
- Do not include a subject line

Respond with ONLY the email body content. Do not include any explanations or additional text outside of the email."""

CONTEXT_TEMPLATE = """

Context - I am responding to this email:
"{context_email}"
"""


def build_prompt(raw_thoughts: str, tone: str, context_email: Optional[str] = None) -> str:
    context = CONTEXT_TEMPLATE.format(context_email=context_email) if context_email else ""
    # str.format does not re-scan substituted values, so user text is embedded as-is
    return PROMPT_TEMPLATE.format(tone=tone, raw_thoughts=raw_thoughts, context=context)


@dataclass
class GenerationResult:
    """Normalized outcome of a generation request, whichever provider handled it."""
    llm_used: Optional[str] = None
    email: Optional[str] = None
    error: Optional[AppError] = None
    history_id: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class EmailGenerator:
    """Dispatches generation requests to the provider selected in the user's settings."""

    def __init__(
        self,
        settings_store: SettingsStore,
        history: HistoryRecorder,
        http_client: OutboundHttpClient,
        providers: dict[str, LLMProvider],
        timeout: float = 60.0,
    ):
        self.settings_store = settings_store
        self.history = history
        self.http_client = http_client
        self.providers = providers
        self.timeout = timeout

    async def generate(
        self,
        user_id: int,
        raw_thoughts: str,
        tone: str,
        context_email: Optional[str] = None,
    ) -> GenerationResult:
        """
        Generate an email body and log the attempt to history.

        Never raises for provider or configuration problems; they come back
        in ``GenerationResult.error``. No retries are attempted.
        """
        try:
            settings = await self.settings_store.get(user_id)
        except DatabaseError as e:
            return GenerationResult(error=e)
        if settings is None:
            logger.error(
                "User settings not found for user_id %s. Defaults might have failed on registration.",
                user_id,
                extra={"user_id": user_id},
            )
            return GenerationResult(error=SettingsUnavailable(user_id))

        prompt = build_prompt(raw_thoughts, tone, context_email)
        llm_used = settings.preferred_llm
        email: Optional[str] = None
        error: Optional[ProviderError] = None

        try:
            provider = get_llm_provider(self.providers, settings.preferred_llm)
            llm_used = provider.tag
            email = await self._call_provider(provider, prompt, settings)
        except ProviderError as e:
            error = e
            logger.warning(
                "LLM error for user_id %s, provider %s: %s",
                user_id,
                settings.preferred_llm,
                e.message,
                extra={"user_id": user_id, "provider": settings.preferred_llm, "error_code": e.error_code},
            )

        history_id = await self.history.record(
            user_id,
            raw_thoughts,
            tone,
            context_email,
            email,
            llm_used if error is None else f"{llm_used}{FAILURE_SUFFIX}",
        )

        return GenerationResult(llm_used=llm_used, email=email, error=error, history_id=history_id)

    async def _call_provider(self, provider: LLMProvider, prompt: str, settings: LLMSettings) -> str:
        request = provider.build_request(prompt, settings)
        response = await self.http_client.request(
            request.method,
            request.url,
            headers=request.headers,
            body=request.body,
            timeout=self.timeout,
        )

        if response.status_code == 0:
            raise ProviderCallFailed(provider.name, 0, response.error or "transport error")
        if not response.ok:
            raise ProviderCallFailed(provider.name, response.status_code, provider.error_message(response.data))

        logger.info(
            "%s responded in %d ms for user_id %s",
            provider.tag,
            response.elapsed_ms,
            settings.user_id,
            extra={"user_id": settings.user_id, "provider": provider.name},
        )
        return provider.parse_response(response.data).strip()
