from __future__ import annotations

import asyncio

import pytest
from fakes import FakeAdapter, make_registry
from fastapi.testclient import TestClient

from chat_gateway.core.errors import ValidationError
from chat_gateway.core.gateway import ChatGateway
from chat_gateway.core.orchestrator import FallbackOrchestrator
from chat_gateway.infra.config import load_settings
from chat_gateway.main import build_app


def _gateway(**adapters: FakeAdapter) -> ChatGateway:
    return ChatGateway(orchestrator=FallbackOrchestrator(make_registry(**adapters)))


def test_generate_skips_history_for_unknown_user() -> None:
    gateway = _gateway(gemini=FakeAdapter("gemini", text="hi"))

    reply = asyncio.run(gateway.generate("gemini", "hello", email="ghost@example.com"))

    assert reply.message == "hi"
    assert reply.saved is False


def test_generate_records_answering_provider_in_history() -> None:
    gateway = _gateway(openai=FakeAdapter("openai", text="from openai"))
    gateway.users.create("ada@example.com", "secret1")

    reply = asyncio.run(gateway.generate("openai", "hello", "en", email="ada@example.com"))

    entry = gateway.history_read("ada@example.com")[0]
    assert reply.saved is True
    assert entry.provider_id == "openai"
    assert entry.response_time_ms == reply.response_time_ms


def test_generate_mock_reply_in_arabic() -> None:
    gateway = _gateway()

    reply = asyncio.run(gateway.generate("claude", "مرحبا", "ar"))

    assert reply.mock is True
    assert reply.provider_id == "mock"
    assert reply.language == "ar"
    assert reply.message.startswith("[رد تجريبي - All AI services unavailable]")


def test_generate_rejects_non_string() -> None:
    gateway = _gateway()

    with pytest.raises(ValidationError):
        asyncio.run(gateway.generate("gemini", 42))


def test_translate_requires_text() -> None:
    gateway = _gateway()

    with pytest.raises(ValidationError) as excinfo:
        asyncio.run(gateway.translate(""))

    assert str(excinfo.value) == "Text is required and must be a string"


def test_built_app_answers_with_mocks_without_keys() -> None:
    app = build_app(load_settings({}))
    client = TestClient(app)

    body = client.post("/api/chat", json={"message": "hello"}).json()

    assert body["mock"] is True
    assert body["message"].startswith("[Mock AI - Gemini not configured]")
    assert client.get("/api").json()["status"] == "Chat Gateway API"
