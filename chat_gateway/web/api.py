from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Sequence

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from chat_gateway.core.errors import GatewayError
from chat_gateway.core.gateway import ChatGateway
from chat_gateway.infra.request_context import RequestContext, log_error, log_request, start_request
from chat_gateway.infra.version import resolve_app_version

LOGGER = logging.getLogger(__name__)

ENDPOINTS = [
    "GET /api/health – Server status",
    "POST /api/auth/signup – Create user",
    "POST /api/auth/login – Authenticate user",
    "POST /api/chat – Send message to AI",
    "GET /api/history/:email – Fetch chat history",
    "POST /api/history – Save chat message",
    "DELETE /api/history/:email – Clear chat history",
    "POST /api/summary – Generate AI summary",
    "POST /api/translate – Translate text",
    "GET /api/models – List AI models",
]


class AuthBody(BaseModel):
    email: Any = None
    password: Any = None


class ChatBody(BaseModel):
    message: Any = None
    model: str = "gemini"
    language: str = "en"
    email: str | None = None


class HistoryBody(BaseModel):
    email: Any = None
    userMessage: Any = None
    aiResponse: Any = None
    model: str = "gemini"
    language: str = "en"


class SummaryBody(BaseModel):
    email: str | None = None
    messages: Any = None
    model: str = "gemini"


class TranslateBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: Any = None
    source: str = Field(default="auto", alias="from")
    to: str = "ar"


INVALID_JSON_MESSAGE = "Invalid JSON in request body. Check your formatting."


def describe_validation_error(errors: Sequence[Any]) -> str:
    """Client-facing text for the first body error; parse failures keep the generic JSON message."""
    if not errors or errors[0].get("type") == "json_invalid":
        return INVALID_JSON_MESSAGE
    first = errors[0]
    field_path = ".".join(str(part) for part in first.get("loc", ()) if part != "body") or "body"
    return f"Invalid value for '{field_path}': {first.get('msg', 'invalid input')}"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _context(request: Request) -> RequestContext | None:
    return getattr(request.state, "request_context", None)


def create_app(gateway: ChatGateway) -> FastAPI:
    app = FastAPI(title="Chat Gateway API")
    app.state.gateway = gateway

    @app.middleware("http")
    async def request_logging(request: Request, call_next):
        request_context = start_request(f"{request.method} {request.url.path}")
        request.state.request_context = request_context
        try:
            response = await call_next(request)
        except Exception as exc:
            request_context.status = "error"
            log_error(LOGGER, request_context, component="http", where="http.unhandled", exc=exc)
            log_request(LOGGER, request_context)
            return JSONResponse(
                status_code=500,
                content={"error": "Internal server error", "code": "UNHANDLED_ERROR"},
            )
        if response.status_code >= 500:
            request_context.status = "error"
        log_request(LOGGER, request_context)
        return response

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": describe_validation_error(exc.errors())})

    @app.get("/api")
    async def index() -> dict[str, Any]:
        return {
            "status": "Chat Gateway API",
            "version": resolve_app_version(),
            "message": "Welcome! Use the endpoints below.",
            "endpoints": ENDPOINTS,
        }

    @app.get("/api/health")
    async def health() -> dict[str, Any]:
        return {
            "status": "OK",
            "message": "Chat Gateway API is running",
            "timestamp": _now_iso(),
            "version": resolve_app_version(),
            "models": gateway.provider_status(),
        }

    @app.get("/api/models")
    async def models() -> dict[str, Any]:
        return {
            "available_models": gateway.available_models(),
            "default": gateway.orchestrator.default_provider,
        }

    @app.post("/api/auth/signup", status_code=201)
    async def signup(body: AuthBody) -> dict[str, Any]:
        user = gateway.users.create(body.email, body.password)
        return {
            "success": True,
            "message": "User created successfully",
            "user": {"email": user.email, "createdAt": user.created_at.isoformat()},
        }

    @app.post("/api/auth/login")
    async def login(body: AuthBody) -> dict[str, Any]:
        user = gateway.users.authenticate(body.email, body.password)
        return {
            "success": True,
            "message": "Login successful",
            "user": {"email": user.email, "lastLogin": user.to_public_dict()["lastLogin"]},
        }

    @app.post("/api/chat")
    async def chat(body: ChatBody, request: Request) -> dict[str, Any]:
        reply = await gateway.generate(
            body.model,
            body.message,
            body.language,
            email=body.email,
            request_context=_context(request),
        )
        return {
            "message": reply.message,
            "model": reply.requested_provider,
            "provider": reply.provider_id,
            "mock": reply.mock,
            "language": reply.language,
            "timestamp": reply.timestamp.isoformat(),
            "responseTime": f"{reply.response_time_ms}ms",
        }

    @app.get("/api/history/{email}")
    async def read_history(email: str) -> dict[str, Any]:
        history = [entry.to_dict() for entry in gateway.history_read(email)]
        return {"history": history, "count": len(history), "user": email}

    @app.post("/api/history")
    async def save_history(body: HistoryBody) -> dict[str, Any]:
        entry = gateway.history_save(
            body.email,
            body.userMessage,
            body.aiResponse,
            provider_id=body.model,
            language=body.language,
        )
        return {"success": True, "message": "Chat history saved", "entry": entry.to_dict()}

    @app.delete("/api/history/{email}")
    async def clear_history(email: str) -> dict[str, Any]:
        gateway.history_clear(email)
        return {"success": True, "message": "Chat history cleared"}

    @app.post("/api/summary")
    async def summary(body: SummaryBody, request: Request) -> dict[str, Any]:
        result = await gateway.summarize(
            messages=body.messages,
            email=body.email,
            provider_id=body.model,
            request_context=_context(request),
        )
        payload: dict[str, Any] = {
            "summary": result.summary_text,
            "messageCount": result.message_count,
            "model": body.model,
        }
        if result.message_count:
            payload["provider"] = result.provider_id
            payload["generatedAt"] = _now_iso()
            payload["responseTime"] = f"{result.response_time_ms or 0}ms"
        return payload

    @app.post("/api/translate")
    async def translate(body: TranslateBody, request: Request) -> dict[str, Any]:
        reply = await gateway.translate(
            body.text,
            source=body.source,
            target=body.to,
            request_context=_context(request),
        )
        return {
            "original": reply.original,
            "translated_text": reply.translated_text,
            "from": reply.source,
            "to": reply.target,
            "timestamp": _now_iso(),
        }

    return app
