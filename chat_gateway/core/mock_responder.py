"""Canned replies used when no provider can answer."""

from __future__ import annotations

from typing import Final

from chat_gateway.infra.llm.base import is_arabic

ECHO_LIMIT: Final[int] = 100
ELLIPSIS: Final[str] = "..."
ALL_UNAVAILABLE_REASON: Final[str] = "All AI services unavailable"


def echo_fragment(message: str) -> str:
    if len(message) > ECHO_LIMIT:
        return message[:ECHO_LIMIT] + ELLIPSIS
    return message


def mock_response(message: str, language: str, reason: str) -> str:
    fragment = echo_fragment(message)
    if is_arabic(language):
        return (
            f"[رد تجريبي - {reason}] لقد فهمت أنك قلت: \"{fragment}\". "
            "قم بإعداد مفاتيح API للحصول على ردود الذكاء الاصطناعي الحقيقية! ✨"
        )
    return (
        f"[Mock AI - {reason}] I understand you said: \"{fragment}\". "
        "Configure API keys for real AI responses! ✨"
    )
