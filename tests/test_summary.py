from __future__ import annotations

import asyncio

import pytest
from fakes import FakeAdapter, make_registry

from chat_gateway.core.errors import UserNotFoundError, ValidationError
from chat_gateway.core.history_store import HistoryStore, new_entry
from chat_gateway.core.orchestrator import FallbackOrchestrator
from chat_gateway.core.summary import EMPTY_SUMMARY_TEXT, SummaryPipeline, build_summary_prompt, heuristic_summary
from chat_gateway.core.users import UserStore


def _pipeline(**adapters: FakeAdapter) -> tuple[SummaryPipeline, HistoryStore, UserStore]:
    users = UserStore()
    history = HistoryStore(users)
    orchestrator = FallbackOrchestrator(make_registry(**adapters))
    return SummaryPipeline(orchestrator, history), history, users


def test_empty_source_skips_providers() -> None:
    gemini = FakeAdapter("gemini", text="should not be used")
    pipeline, _, _ = _pipeline(gemini=gemini)

    result = asyncio.run(pipeline.summarize(messages=[]))

    assert result.summary_text == EMPTY_SUMMARY_TEXT
    assert result.message_count == 0
    assert gemini.calls == 0


def test_provider_summary_is_returned() -> None:
    gemini = FakeAdapter("gemini", text="You like code.")
    pipeline, _, _ = _pipeline(gemini=gemini)

    result = asyncio.run(pipeline.summarize(messages=["write some code"], provider_id="gemini"))

    assert result.summary_text == "You like code."
    assert result.message_count == 1
    assert result.provider_id == "gemini"
    assert result.mock is False
    assert "write some code" in gemini.prompts[0]


def test_heuristic_when_all_providers_fail() -> None:
    pipeline, _, _ = _pipeline()

    result = asyncio.run(pipeline.summarize(messages=["I need help with code", "how does this work"]))

    assert result.message_count == 2
    assert result.mock is True
    assert result.provider_id == "heuristic"
    assert "code, help, how" in result.summary_text
    assert "average 20 characters" in result.summary_text
    assert "concise communication style" in result.summary_text


def test_heuristic_when_dispatch_raises() -> None:
    pipeline, _, _ = _pipeline()

    async def _boom(*args, **kwargs):
        raise RuntimeError("orchestrator down")

    pipeline._orchestrator.dispatch = _boom

    result = asyncio.run(pipeline.summarize(messages=["tell me about data"]))

    assert result.mock is True
    assert "data" in result.summary_text


def test_heuristic_without_keywords() -> None:
    text = heuristic_summary(["zzz", "qqqqq"])

    assert text.startswith("You've sent 2 messages with an average length of 4 characters.")


def test_heuristic_detailed_style() -> None:
    text = heuristic_summary(["help " * 30])

    assert "detailed communication style" in text


def test_heuristic_keeps_keyword_list_order() -> None:
    text = heuristic_summary(["work with data in my app to learn what ai does"])

    assert "related to ai, what, learn." in text


def test_prompt_uses_last_twenty_messages() -> None:
    messages = [f"msg-{index}" for index in range(25)]

    prompt = build_summary_prompt(messages)

    lines = prompt.splitlines()
    assert lines[-20:] == messages[5:]
    assert "msg-4" not in lines


def test_message_count_covers_full_source() -> None:
    gemini = FakeAdapter("gemini", text="summary")
    pipeline, _, _ = _pipeline(gemini=gemini)

    result = asyncio.run(pipeline.summarize(messages=[f"m{index}" for index in range(30)]))

    assert result.message_count == 30


def test_email_source_reads_user_messages() -> None:
    gemini = FakeAdapter("gemini", text="summary")
    pipeline, history, users = _pipeline(gemini=gemini)
    users.create("ada@example.com", "secret1")
    history.append("ada@example.com", new_entry("question one", "answer one", provider_id="gemini"))
    history.append("ada@example.com", new_entry("question two", "answer two", provider_id="gemini"))

    result = asyncio.run(pipeline.summarize(email="ada@example.com"))

    assert result.message_count == 2
    assert "question one\nquestion two" in gemini.prompts[0]
    assert "answer one" not in gemini.prompts[0]


def test_email_with_empty_history() -> None:
    pipeline, _, users = _pipeline()
    users.create("ada@example.com", "secret1")

    result = asyncio.run(pipeline.summarize(email="ada@example.com"))

    assert result.summary_text == EMPTY_SUMMARY_TEXT


def test_messages_take_precedence_over_email() -> None:
    gemini = FakeAdapter("gemini", text="summary")
    pipeline, _, _ = _pipeline(gemini=gemini)

    result = asyncio.run(pipeline.summarize(messages=["inline"], email="ghost@example.com"))

    assert result.message_count == 1


def test_unknown_email_raises() -> None:
    pipeline, _, _ = _pipeline()

    with pytest.raises(UserNotFoundError):
        asyncio.run(pipeline.summarize(email="ghost@example.com"))


def test_source_is_required() -> None:
    pipeline, _, _ = _pipeline()

    with pytest.raises(ValidationError):
        asyncio.run(pipeline.summarize())
    with pytest.raises(ValidationError):
        asyncio.run(pipeline.summarize(messages="not a list"))


def test_heuristic_when_requested_provider_unconfigured() -> None:
    gemini = FakeAdapter("gemini", configured=False)
    groq = FakeAdapter("groq", text="would be a real summary")
    pipeline, _, _ = _pipeline(gemini=gemini, groq=groq)

    result = asyncio.run(pipeline.summarize(messages=["how do I learn code"], provider_id="gemini"))

    assert result.mock is True
    assert result.provider_id == "heuristic"
    assert groq.calls == 0
