from __future__ import annotations

from collections.abc import Iterable, Iterator

from chat_gateway.infra.config import Settings
from chat_gateway.infra.llm.anthropic_client import AnthropicClient
from chat_gateway.infra.llm.base import ProviderAdapter
from chat_gateway.infra.llm.gemini_client import GeminiClient
from chat_gateway.infra.llm.groq_client import GroqClient
from chat_gateway.infra.llm.openai_client import OpenAIClient


class ProviderRegistry:
    """Maps provider ids to adapters; ids are matched case-insensitively."""

    def __init__(self, adapters: Iterable[ProviderAdapter] = ()) -> None:
        self._adapters: dict[str, ProviderAdapter] = {}
        for adapter in adapters:
            self.register(adapter)

    def register(self, adapter: ProviderAdapter) -> None:
        self._adapters[adapter.provider_id.strip().lower()] = adapter

    def get(self, provider_id: str | None) -> ProviderAdapter | None:
        if not provider_id:
            return None
        return self._adapters.get(provider_id.strip().lower())

    def __contains__(self, provider_id: object) -> bool:
        return isinstance(provider_id, str) and self.get(provider_id) is not None

    def __iter__(self) -> Iterator[ProviderAdapter]:
        return iter(self._adapters.values())

    def __len__(self) -> int:
        return len(self._adapters)


def build_provider_registry(settings: Settings) -> ProviderRegistry:
    timeout = settings.provider_timeout_seconds
    return ProviderRegistry(
        [
            GeminiClient(api_key=settings.gemini_api_key, timeout_seconds=timeout),
            GroqClient(api_key=settings.groq_api_key, timeout_seconds=timeout),
            AnthropicClient(api_key=settings.anthropic_api_key, timeout_seconds=timeout),
            OpenAIClient(
                api_key=settings.openai_api_key,
                model=settings.openai_model,
                timeout_seconds=timeout,
            ),
        ]
    )
