from __future__ import annotations

import json
import logging
import math
import time
from dataclasses import dataclass
from typing import Any, Final, Sequence

from chat_gateway.core.errors import ValidationError
from chat_gateway.core.history_store import HistoryStore
from chat_gateway.core.orchestrator import FallbackOrchestrator
from chat_gateway.infra.request_context import RequestContext, log_error, log_event

LOGGER = logging.getLogger(__name__)

EMPTY_SUMMARY_TEXT: Final[str] = "No chat history available yet."
RECENT_MESSAGE_LIMIT: Final[int] = 20
SUMMARY_LANGUAGE: Final[str] = "en"
HEURISTIC_PROVIDER_ID: Final[str] = "heuristic"
SUMMARY_KEYWORDS: Final[tuple[str, ...]] = ("ai", "code", "help", "how", "what", "learn", "app", "data", "work")
MAX_KEYWORDS: Final[int] = 3
DETAILED_AVERAGE_LENGTH: Final[int] = 100

SUMMARY_PROMPT_TEMPLATE: Final[str] = (
    "Analyze these user messages and provide a brief, friendly summary of their interests "
    "and common topics in 2-3 sentences. Be concise, insightful, and positive. Focus on "
    "patterns, recurring themes, and main areas of interest.\n\n"
    "Messages:\n{messages}"
)


@dataclass(frozen=True)
class SummaryResult:
    summary_text: str
    message_count: int
    provider_id: str | None = None
    mock: bool = False
    response_time_ms: int | None = None


def build_summary_prompt(messages: Sequence[Any]) -> str:
    recent = list(messages)[-RECENT_MESSAGE_LIMIT:]
    lines = [item if isinstance(item, str) else json.dumps(item, ensure_ascii=False) for item in recent]
    return SUMMARY_PROMPT_TEMPLATE.format(messages="\n".join(lines))


def heuristic_summary(messages: Sequence[str]) -> str:
    """Offline summary from message count, average length and a few keywords."""
    texts = [item if isinstance(item, str) else json.dumps(item, ensure_ascii=False) for item in messages]
    message_count = len(texts)
    if message_count == 0:
        return EMPTY_SUMMARY_TEXT
    average = sum(len(text) for text in texts) / message_count
    rounded = math.floor(average + 0.5)
    all_text = " ".join(texts).lower()
    found = [keyword for keyword in SUMMARY_KEYWORDS if keyword in all_text][:MAX_KEYWORDS]
    if found:
        style = "detailed" if average > DETAILED_AVERAGE_LENGTH else "concise"
        return (
            f"Based on {message_count} messages, you've shown interest in topics related to "
            f"{', '.join(found)}. Your messages average {rounded} characters, suggesting {style} "
            "communication style. You actively engage with various topics and seek information."
        )
    return (
        f"You've sent {message_count} messages with an average length of {rounded} characters. "
        "Your conversations cover various topics and you demonstrate active engagement with the AI assistant."
    )


class SummaryPipeline:
    def __init__(self, orchestrator: FallbackOrchestrator, history: HistoryStore) -> None:
        self._orchestrator = orchestrator
        self._history = history

    def resolve_messages(
        self,
        *,
        messages: Sequence[Any] | None = None,
        email: str | None = None,
    ) -> list[Any]:
        """Messages win when both are given; history maps to the user's own messages."""
        if messages is not None:
            if isinstance(messages, (str, bytes)) or not isinstance(messages, Sequence):
                raise ValidationError("messages must be an array")
            return list(messages)
        if email:
            return [entry.user_message for entry in self._history.read(email)]
        raise ValidationError("Either email or messages array is required")

    async def summarize(
        self,
        *,
        messages: Sequence[Any] | None = None,
        email: str | None = None,
        provider_id: str | None = None,
        request_context: RequestContext | None = None,
    ) -> SummaryResult:
        source = self.resolve_messages(messages=messages, email=email)
        if not source:
            return SummaryResult(summary_text=EMPTY_SUMMARY_TEXT, message_count=0, provider_id=provider_id)

        prompt = build_summary_prompt(source)
        start_time = time.monotonic()
        log_event(
            LOGGER,
            request_context,
            component="summary",
            event="summary.start",
            requested=provider_id or "-",
            messages=len(source),
        )
        try:
            result = await self._orchestrator.dispatch(
                provider_id,
                prompt,
                SUMMARY_LANGUAGE,
                request_context=request_context,
            )
        except Exception as exc:
            log_error(LOGGER, request_context, component="summary", where="summary.dispatch", exc=exc)
            result = None

        response_time_ms = int((time.monotonic() - start_time) * 1000)
        if result is None or result.mock:
            log_event(
                LOGGER,
                request_context,
                component="summary",
                event="summary.heuristic",
                status="degraded",
                messages=len(source),
            )
            return SummaryResult(
                summary_text=heuristic_summary(source),
                message_count=len(source),
                provider_id=HEURISTIC_PROVIDER_ID,
                mock=True,
                response_time_ms=response_time_ms,
            )
        log_event(
            LOGGER,
            request_context,
            component="summary",
            event="summary.done",
            provider=result.provider_id,
            duration_ms=float(response_time_ms),
        )
        return SummaryResult(
            summary_text=result.text,
            message_count=len(source),
            provider_id=result.provider_id,
            response_time_ms=response_time_ms,
        )
