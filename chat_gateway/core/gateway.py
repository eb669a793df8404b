"""ChatGateway: the single entry point the HTTP layer talks to.

Wires the user table, the history store, the fallback orchestrator and the
summary pipeline. Construct one per process and pass it to request handlers;
tests build a fresh instance each time.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Final, Sequence

from chat_gateway.core.errors import ValidationError
from chat_gateway.core.history_store import HistoryEntry, HistoryStore, new_entry
from chat_gateway.core.orchestrator import FallbackOrchestrator
from chat_gateway.core.summary import SummaryPipeline, SummaryResult
from chat_gateway.core.users import UserStore
from chat_gateway.infra.config import Settings
from chat_gateway.infra.llm.registry import ProviderRegistry, build_provider_registry
from chat_gateway.infra.request_context import RequestContext, log_event
from chat_gateway.infra.resilience import CircuitBreakerRegistry

LOGGER = logging.getLogger(__name__)

TRANSLATION_PROVIDER: Final[str] = "gemini"

MODEL_CATALOGUE: Final[dict[str, dict[str, str]]] = {
    "gemini": {"name": "Google Gemini", "description": "Free tier - 60 requests per minute"},
    "groq": {"name": "Groq (Llama 3.1)", "description": "Fast and efficient"},
    "claude": {"name": "Claude Haiku", "description": "Thoughtful responses"},
    "openai": {"name": "OpenAI GPT-3.5", "description": "General purpose"},
}


@dataclass(frozen=True)
class ChatReply:
    message: str
    requested_provider: str
    provider_id: str
    language: str
    response_time_ms: int
    mock: bool = False
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    saved: bool = False


@dataclass(frozen=True)
class TranslationReply:
    original: str
    translated_text: str
    source: str
    target: str
    provider_id: str
    mock: bool = False


class ChatGateway:
    def __init__(
        self,
        *,
        orchestrator: FallbackOrchestrator,
        users: UserStore | None = None,
        history: HistoryStore | None = None,
    ) -> None:
        self.users = users or UserStore()
        self.history = history or HistoryStore(self.users)
        self.orchestrator = orchestrator
        self.summaries = SummaryPipeline(orchestrator, self.history)

    @classmethod
    def from_settings(cls, settings: Settings, *, registry: ProviderRegistry | None = None) -> ChatGateway:
        orchestrator = FallbackOrchestrator(
            registry or build_provider_registry(settings),
            default_provider=settings.default_provider,
            circuit_breakers=CircuitBreakerRegistry(config=settings.circuit_breaker_config()),
        )
        return cls(orchestrator=orchestrator)

    async def generate(
        self,
        provider_id: str | None,
        message: object,
        language: str = "en",
        *,
        email: str | None = None,
        request_context: RequestContext | None = None,
    ) -> ChatReply:
        if not message or not isinstance(message, str):
            raise ValidationError("Message is required and must be a string")
        if not message.strip():
            raise ValidationError("Message cannot be empty")
        requested = (provider_id or self.orchestrator.default_provider).strip() or self.orchestrator.default_provider
        language = language or "en"

        start_time = time.monotonic()
        result = await self.orchestrator.dispatch(requested, message, language, request_context=request_context)
        response_time_ms = int((time.monotonic() - start_time) * 1000)

        saved = False
        if email and self.users.exists(email):
            self.history.append(
                email,
                new_entry(
                    message,
                    result.text,
                    provider_id=result.provider_id,
                    language=language,
                    response_time_ms=response_time_ms,
                ),
            )
            saved = True
        log_event(
            LOGGER,
            request_context,
            component="chat",
            event="chat.reply",
            status="degraded" if result.mock else "ok",
            requested=requested,
            provider=result.provider_id,
            saved=saved,
        )
        return ChatReply(
            message=result.text,
            requested_provider=requested,
            provider_id=result.provider_id,
            language=language,
            response_time_ms=response_time_ms,
            mock=result.mock,
            saved=saved,
        )

    def history_append(self, email: str, entry: HistoryEntry) -> HistoryEntry:
        self.history.append(email, entry)
        return entry

    def history_save(
        self,
        email: object,
        user_message: object,
        ai_response: object,
        *,
        provider_id: str = "gemini",
        language: str = "en",
    ) -> HistoryEntry:
        if not email or not user_message or not ai_response:
            raise ValidationError("Email, userMessage, and aiResponse are required")
        if not isinstance(email, str) or not isinstance(user_message, str) or not isinstance(ai_response, str):
            raise ValidationError("Email, userMessage, and aiResponse must be strings")
        entry = new_entry(user_message, ai_response, provider_id=provider_id, language=language)
        return self.history_append(email, entry)

    def history_read(self, email: str) -> list[HistoryEntry]:
        return self.history.read(email)

    def history_clear(self, email: str) -> None:
        self.history.clear(email)

    async def summarize(
        self,
        *,
        messages: Sequence[Any] | None = None,
        email: str | None = None,
        provider_id: str | None = None,
        request_context: RequestContext | None = None,
    ) -> SummaryResult:
        return await self.summaries.summarize(
            messages=messages,
            email=email,
            provider_id=provider_id or self.orchestrator.default_provider,
            request_context=request_context,
        )

    async def translate(
        self,
        text: object,
        *,
        source: str = "auto",
        target: str = "ar",
        request_context: RequestContext | None = None,
    ) -> TranslationReply:
        if not text or not isinstance(text, str):
            raise ValidationError("Text is required and must be a string")
        if not text.strip():
            raise ValidationError("Text cannot be empty")
        prompt = (
            f"Translate the following text from {source} to {target}. "
            f"Only provide the translation, no additional text:\n\n\"{text}\""
        )
        result = await self.orchestrator.dispatch(
            TRANSLATION_PROVIDER,
            prompt,
            target,
            request_context=request_context,
        )
        if result.mock:
            translated = f"[Translation: {source} → {target}] {text}"
        else:
            translated = result.text
        return TranslationReply(
            original=text,
            translated_text=translated,
            source=source,
            target=target,
            provider_id=result.provider_id,
            mock=result.mock,
        )

    def provider_status(self) -> dict[str, str]:
        return {
            adapter.provider_id: "available" if adapter.configured else "not configured"
            for adapter in self.orchestrator.registry
        }

    def available_models(self) -> list[dict[str, str]]:
        models: list[dict[str, str]] = []
        for provider_id, status in self.provider_status().items():
            info = MODEL_CATALOGUE.get(provider_id, {"name": provider_id, "description": ""})
            models.append(
                {
                    "id": provider_id,
                    "name": info["name"],
                    "status": status,
                    "description": info["description"],
                }
            )
        return models
