from __future__ import annotations

from typing import Any

from chat_gateway.infra.llm.base import HTTPProviderAdapter, first_item, is_arabic, require_text

ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
ANTHROPIC_MODEL = "claude-3-haiku-20240307"


class AnthropicClient(HTTPProviderAdapter):
    provider_id = "claude"
    display_name = "Claude"

    def system_prompt(self, language: str) -> str:
        if is_arabic(language):
            return "You are a helpful assistant. Respond in Arabic with clear, proper language."
        return "You are a helpful assistant. Provide clear, concise responses."

    def build_url(self) -> str:
        return ANTHROPIC_URL

    def build_headers(self) -> dict[str, str]:
        return {
            "x-api-key": self.api_key or "",
            "anthropic-version": ANTHROPIC_VERSION,
            "Content-Type": "application/json",
        }

    def build_payload(self, prompt: str, language: str) -> dict[str, Any]:
        return {
            "model": ANTHROPIC_MODEL,
            "max_tokens": 500,
            "system": self.system_prompt(language),
            "messages": [{"role": "user", "content": prompt}],
        }

    def extract_text(self, data: Any) -> str:
        block = first_item(data, "content")
        if not isinstance(block, dict):
            return require_text(None, "content[0].text")
        return require_text(block.get("text"), "content[0].text")
