from __future__ import annotations

from typing import Any

import httpx

from chat_gateway.infra.llm.base import (
    DEFAULT_TIMEOUT_SECONDS,
    HTTPProviderAdapter,
    first_item,
    is_arabic,
    require_text,
)


class OpenAIClient(HTTPProviderAdapter):
    provider_id = "openai"
    display_name = "OpenAI"

    def __init__(
        self,
        *,
        api_key: str | None,
        model: str = "gpt-3.5-turbo",
        base_url: str = "https://api.openai.com/v1",
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(api_key=api_key, timeout_seconds=timeout_seconds, transport=transport)
        self.model = model
        self.base_url = base_url.rstrip("/")

    def system_prompt(self, language: str) -> str:
        if is_arabic(language):
            return "You are a helpful assistant. Respond in Arabic with clear, proper language."
        return "You are a helpful assistant. Provide clear, concise responses."

    def build_url(self) -> str:
        return f"{self.base_url}/chat/completions"

    def build_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def build_payload(self, prompt: str, language: str) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": self.system_prompt(language)},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": 500,
            "temperature": 0.7,
        }

    def extract_text(self, data: Any) -> str:
        choice = first_item(data, "choices")
        message = choice.get("message") if isinstance(choice, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        return require_text(content, "choices[0].message.content")
