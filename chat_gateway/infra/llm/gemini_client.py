from __future__ import annotations

from typing import Any

from chat_gateway.infra.llm.base import (
    ErrorKind,
    HTTPProviderAdapter,
    ResponseShapeError,
    first_item,
    is_arabic,
    require_text,
)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"
GEMINI_MODEL = "gemini-2.5-flash"


class GeminiClient(HTTPProviderAdapter):
    """Google Generative Language API; the key travels in the query string."""

    provider_id = "gemini"
    display_name = "Gemini"

    def system_prompt(self, language: str) -> str:
        if is_arabic(language):
            return "أنت مساعد مفيد. قم بالرد باللغة العربية بلغة واضحة ومناسبة."
        return "You are a helpful assistant. Provide clear, concise responses."

    def build_url(self) -> str:
        return f"{GEMINI_BASE_URL}/{GEMINI_MODEL}:generateContent?key={self.api_key}"

    def build_payload(self, prompt: str, language: str) -> dict[str, Any]:
        return {
            "contents": [
                {
                    "parts": [
                        {"text": f"{self.system_prompt(language)}\n\nUser: {prompt}"},
                    ]
                }
            ],
            "generationConfig": {
                "maxOutputTokens": 1000,
                "temperature": 0.7,
            },
        }

    def extract_text(self, data: Any) -> str:
        candidate = first_item(data, "candidates")
        if not isinstance(candidate, dict):
            raise ResponseShapeError("candidates[0] is not an object")
        part = first_item(candidate.get("content"), "parts")
        if not isinstance(part, dict):
            raise ResponseShapeError("parts[0] is not an object")
        return require_text(part.get("text"), "candidates[0].content.parts[0].text")

    def map_status(self, status_code: int, message: str | None) -> tuple[ErrorKind, str]:
        if status_code == 429:
            return (
                ErrorKind.RATE_LIMITED,
                "Gemini: Rate limit exceeded - free tier allows 60 requests per minute",
            )
        if status_code == 400:
            return ErrorKind.UNKNOWN, "Gemini: Bad request - check your prompt format"
        if status_code in {401, 403}:
            return ErrorKind.AUTH_FAILURE, "Gemini: API key invalid or quota exceeded"
        return super().map_status(status_code, message)
