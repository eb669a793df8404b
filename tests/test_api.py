from __future__ import annotations

import asyncio

import httpx
from fakes import FakeAdapter, make_registry
from fastapi.testclient import TestClient

from chat_gateway.core.gateway import ChatGateway
from chat_gateway.core.orchestrator import FallbackOrchestrator
from chat_gateway.web.api import create_app


def _client(**adapters: FakeAdapter) -> tuple[TestClient, ChatGateway]:
    gateway = ChatGateway(orchestrator=FallbackOrchestrator(make_registry(**adapters)))
    return TestClient(create_app(gateway)), gateway


def _signup(client: TestClient, email: str = "ada@example.com") -> None:
    response = client.post("/api/auth/signup", json={"email": email, "password": "secret1"})
    assert response.status_code == 201


def test_health_reports_provider_status() -> None:
    client, _ = _client(groq=FakeAdapter("groq", configured=False))

    response = client.get("/api/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "OK"
    assert body["models"]["groq"] == "not configured"
    assert body["models"]["gemini"] == "available"


def test_models_lists_catalogue() -> None:
    client, _ = _client()

    body = client.get("/api/models").json()

    assert [model["id"] for model in body["available_models"]] == ["gemini", "groq", "claude", "openai"]
    assert body["default"] == "gemini"


def test_signup_and_login() -> None:
    client, _ = _client()
    _signup(client)

    duplicate = client.post("/api/auth/signup", json={"email": "ada@example.com", "password": "secret1"})
    wrong = client.post("/api/auth/login", json={"email": "ada@example.com", "password": "secret2"})
    ok = client.post("/api/auth/login", json={"email": "ada@example.com", "password": "secret1"})

    assert duplicate.status_code == 400
    assert duplicate.json() == {"error": "User already exists"}
    assert wrong.status_code == 401
    assert ok.status_code == 200
    assert ok.json()["user"]["email"] == "ada@example.com"
    assert ok.json()["user"]["lastLogin"] is not None


def test_chat_returns_answering_provider() -> None:
    client, _ = _client(gemini=FakeAdapter("gemini"), groq=FakeAdapter("groq", text="hi from groq"))

    response = client.post("/api/chat", json={"message": "hello", "model": "gemini"})

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "hi from groq"
    assert body["model"] == "gemini"
    assert body["provider"] == "groq"
    assert body["mock"] is False
    assert body["responseTime"].endswith("ms")


def test_chat_requires_message() -> None:
    client, _ = _client()

    missing = client.post("/api/chat", json={"model": "gemini"})
    blank = client.post("/api/chat", json={"message": "   "})

    assert missing.status_code == 400
    assert missing.json() == {"error": "Message is required and must be a string"}
    assert blank.json() == {"error": "Message cannot be empty"}


def test_invalid_json_body() -> None:
    client, _ = _client()

    response = client.post("/api/chat", content=b"{not json", headers={"Content-Type": "application/json"})

    assert response.status_code == 400
    assert "Invalid JSON" in response.json()["error"]


def test_chat_with_email_is_saved_to_history() -> None:
    client, _ = _client(claude=FakeAdapter("claude", text="answer"))
    _signup(client)

    client.post("/api/chat", json={"message": "question", "model": "claude", "email": "ada@example.com"})
    history = client.get("/api/history/ada@example.com").json()

    assert history["count"] == 1
    assert history["history"][0]["userMessage"] == "question"
    assert history["history"][0]["aiResponse"] == "answer"
    assert history["history"][0]["model"] == "claude"


def test_history_save_and_clear() -> None:
    client, _ = _client()
    _signup(client)

    saved = client.post(
        "/api/history",
        json={"email": "ada@example.com", "userMessage": "q", "aiResponse": "a", "model": "groq"},
    )
    cleared = client.delete("/api/history/ada@example.com")
    history = client.get("/api/history/ada@example.com").json()

    assert saved.json()["success"] is True
    assert cleared.json()["success"] is True
    assert history["count"] == 0


def test_history_validation_and_unknown_user() -> None:
    client, _ = _client()

    invalid = client.post("/api/history", json={"email": "ada@example.com"})
    unknown = client.get("/api/history/ghost@example.com")

    assert invalid.status_code == 400
    assert invalid.json() == {"error": "Email, userMessage, and aiResponse are required"}
    assert unknown.status_code == 404
    assert unknown.json() == {"error": "User not found"}


def test_summary_of_empty_history() -> None:
    client, _ = _client()
    _signup(client)

    body = client.post("/api/summary", json={"email": "ada@example.com"}).json()

    assert body["summary"] == "No chat history available yet."
    assert body["messageCount"] == 0
    assert "provider" not in body


def test_summary_falls_back_to_heuristic() -> None:
    client, _ = _client()

    body = client.post("/api/summary", json={"messages": ["I need help with code", "how does this work"]}).json()

    assert body["messageCount"] == 2
    assert body["provider"] == "heuristic"
    assert "code, help, how" in body["summary"]


def test_summary_requires_source() -> None:
    client, _ = _client()

    response = client.post("/api/summary", json={})

    assert response.status_code == 400


def test_translate_mock_when_unavailable() -> None:
    client, _ = _client()

    body = client.post("/api/translate", json={"text": "hello", "from": "en", "to": "ar"}).json()

    assert body["translated_text"] == "[Translation: en → ar] hello"
    assert body["from"] == "en"
    assert body["to"] == "ar"


def test_translate_uses_provider_text() -> None:
    gemini = FakeAdapter("gemini", text="مرحبا")
    client, _ = _client(gemini=gemini)

    body = client.post("/api/translate", json={"text": "hello"}).json()

    assert body["translated_text"] == "مرحبا"
    assert body["from"] == "auto"
    assert "from auto to ar" in gemini.prompts[0]


def test_wrong_field_type_names_the_field() -> None:
    client, _ = _client()

    response = client.post("/api/chat", json={"message": "hello", "language": 5})

    assert response.status_code == 400
    assert response.json()["error"].startswith("Invalid value for 'language':")


def test_store_routes_run_on_the_event_loop() -> None:
    client, _ = _client()
    store_routes = {
        "/api/auth/signup",
        "/api/auth/login",
        "/api/history",
        "/api/history/{email}",
    }

    endpoints = [route.endpoint for route in client.app.routes if getattr(route, "path", None) in store_routes]

    assert len(endpoints) == 5
    assert all(asyncio.iscoroutinefunction(endpoint) for endpoint in endpoints)


def test_concurrent_duplicate_signups_create_one_user() -> None:
    gateway = ChatGateway(orchestrator=FallbackOrchestrator(make_registry()))
    app = create_app(gateway)

    async def _signup_twice() -> list[int]:
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://gateway") as client:
            responses = await asyncio.gather(
                client.post("/api/auth/signup", json={"email": "ada@example.com", "password": "first1"}),
                client.post("/api/auth/signup", json={"email": "ada@example.com", "password": "second2"}),
            )
        return sorted(response.status_code for response in responses)

    statuses = asyncio.run(_signup_twice())

    assert statuses == [201, 400]
    assert len(gateway.users) == 1
