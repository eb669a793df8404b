"""Per-request correlation and structured JSON events.

Every HTTP request gets a RequestContext; core code passes it down so that
provider attempts, fallback hops and summary steps share one correlation id.
User text never reaches the log verbatim: it is reduced to its length and a
sha256 digest, with a short preview only when APP_ENV is a dev value.
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
import traceback
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

from chat_gateway.infra.config import resolve_env_label

LOGGER = logging.getLogger(__name__)

PREVIEW_CHARS = 120
MASK = "***"

_MASKED_FIELDS = frozenset(
    {"authorization", "api_key", "apikey", "x-api-key", "token", "password", "secret", "headers", "cookie"}
)
_USER_TEXT_FIELDS = frozenset(
    {"text", "prompt", "message", "user_message", "ai_response", "response", "content", "summary"}
)
# Identifiers and enum-like values that are safe to log as-is.
_PLAIN_FIELDS = frozenset(
    {
        "where",
        "exc_type",
        "model",
        "provider",
        "provider_id",
        "requested",
        "kind",
        "reason",
        "route",
        "language",
        "step",
        "component",
        "name",
        "status",
        "exc_msg",
        "stack",
    }
)
_STATUS_LEVELS = {"error": logging.ERROR, "degraded": logging.WARNING, "refused": logging.WARNING}


@dataclass(frozen=True)
class TraceStep:
    step: str
    component: str
    name: str | None
    status: str
    duration_ms: float | None


@dataclass
class RequestContext:
    correlation_id: str
    email: str | None
    route: str
    ts: datetime
    env: str
    meta: dict[str, Any] = field(default_factory=dict)
    trace: list[TraceStep] = field(default_factory=list)
    start_time: float = field(default_factory=time.monotonic)
    status: str = "ok"


def start_request(route: str, *, email: str | None = None, env: str | None = None) -> RequestContext:
    return RequestContext(
        correlation_id=uuid.uuid4().hex,
        email=email,
        route=route,
        ts=datetime.now(timezone.utc),
        env=env or resolve_env_label(),
    )


def add_trace(
    request_context: RequestContext | None,
    *,
    step: str,
    component: str,
    name: str | None = None,
    status: str = "ok",
    duration_ms: float | None = None,
) -> None:
    if request_context is not None:
        request_context.trace.append(TraceStep(step, component, name, status, duration_ms))


def elapsed_ms(start_time: float) -> float:
    """Milliseconds since start_time, floored at 0.01 so fast steps never log as zero."""
    return max((time.monotonic() - start_time) * 1000, 0.01)


def _digest(text: str, env: str) -> dict[str, Any]:
    summary: dict[str, Any] = {
        "chars": len(text),
        "sha256": hashlib.sha256(text.encode("utf-8")).hexdigest(),
    }
    if env == "dev":
        flat = " ".join(text.split())
        summary["preview"] = flat if len(flat) <= PREVIEW_CHARS else flat[:PREVIEW_CHARS].rstrip() + "…"
    return summary


def _scrub(value: Any, env: str) -> Any:
    if isinstance(value, str):
        return _digest(value, env)
    if isinstance(value, bytes):
        return {"bytes": len(value)}
    if isinstance(value, TraceStep):
        value = asdict(value)
    if isinstance(value, dict):
        return {key: _scrub_field(str(key).lower(), item, env) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_scrub(item, env) for item in value]
    return value


def _scrub_field(key: str, value: Any, env: str) -> Any:
    if key in _MASKED_FIELDS:
        return MASK
    if key in _PLAIN_FIELDS and isinstance(value, str):
        return value
    if key in _USER_TEXT_FIELDS:
        return _digest(str(value), env)
    return _scrub(value, env)


def safe_log_payload(request_context: RequestContext | None, data: Any) -> Any:
    return _scrub(data, request_context.env if request_context else "prod")


def log_event(
    logger: logging.Logger,
    request_context: RequestContext | None,
    *,
    component: str,
    event: str,
    status: str = "ok",
    duration_ms: float | None = None,
    **fields: Any,
) -> None:
    record: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "correlation_id": request_context.correlation_id if request_context else "-",
        "route": request_context.route if request_context else "-",
        "component": component,
        "event": event,
        "status": status,
        "env": request_context.env if request_context else "prod",
    }
    if duration_ms is not None:
        record["duration_ms"] = round(duration_ms, 2)
    record.update(safe_log_payload(request_context, fields))
    logger.log(_STATUS_LEVELS.get(status, logging.INFO), json.dumps(record, ensure_ascii=False))


def log_error(
    logger: logging.Logger,
    request_context: RequestContext | None,
    *,
    component: str,
    where: str,
    exc: BaseException,
    extra: dict[str, Any] | None = None,
) -> None:
    dev = request_context is not None and request_context.env == "dev"
    detail = str(exc)
    fields: dict[str, Any] = {
        "where": where,
        "exc_type": type(exc).__name__,
        "exc_msg": detail if dev or len(detail) <= PREVIEW_CHARS else detail[:PREVIEW_CHARS] + "…",
    }
    if dev:
        fields["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    if request_context is not None:
        request_context.meta.setdefault("error", {"where": where, "exc_type": fields["exc_type"]})
    fields.update(extra or {})
    log_event(logger, request_context, component=component, event="error", status="error", **fields)


def log_request(logger: logging.Logger, request_context: RequestContext) -> None:
    """Closing event for a request: overall status, duration and provider trace."""
    log_event(
        logger,
        request_context,
        component="http",
        event="trace.summary",
        status=request_context.status,
        duration_ms=elapsed_ms(request_context.start_time),
        email=request_context.email or "-",
        trace=request_context.trace,
    )
