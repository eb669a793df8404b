from __future__ import annotations

from typing import Any

from chat_gateway.infra.llm.base import HTTPProviderAdapter, first_item, is_arabic, require_text

GROQ_URL = "https://api.groq.com/openai/v1/chat/completions"
GROQ_MODEL = "llama-3.1-8b-instant"


class GroqClient(HTTPProviderAdapter):
    provider_id = "groq"
    display_name = "Groq"

    def system_prompt(self, language: str) -> str:
        if is_arabic(language):
            return (
                "You are a helpful assistant. Respond in Arabic with clear, proper language. "
                "Keep responses concise and helpful."
            )
        return "You are a helpful assistant. Provide clear, concise, and helpful responses."

    def build_url(self) -> str:
        return GROQ_URL

    def build_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def build_payload(self, prompt: str, language: str) -> dict[str, Any]:
        return {
            "model": GROQ_MODEL,
            "messages": [
                {"role": "system", "content": self.system_prompt(language)},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": 1024,
            "temperature": 0.7,
            "stream": False,
        }

    def extract_text(self, data: Any) -> str:
        choice = first_item(data, "choices")
        message = choice.get("message") if isinstance(choice, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        return require_text(content, "choices[0].message.content")
