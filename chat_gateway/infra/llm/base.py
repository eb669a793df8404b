from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

import httpx

from chat_gateway.infra.resilience import is_timeout_error

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
_ARABIC_TAGS = {"ar"}


class ErrorKind(str, Enum):
    NOT_CONFIGURED = "not_configured"
    AUTH_FAILURE = "auth_failure"
    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    BAD_RESPONSE_SHAPE = "bad_response_shape"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ProviderError:
    provider_id: str
    kind: ErrorKind
    message: str

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class AIResult:
    """Normalized answer: the text and the provider that actually produced it."""

    text: str
    provider_id: str
    mock: bool = False
    reason: str | None = None
    errors: tuple[ProviderError, ...] = ()


@dataclass(frozen=True)
class ProviderOutcome:
    """Either a result or a typed error, never both."""

    result: AIResult | None = None
    error: ProviderError | None = None

    @property
    def ok(self) -> bool:
        return self.result is not None

    @classmethod
    def success(cls, text: str, provider_id: str) -> ProviderOutcome:
        return cls(result=AIResult(text=text, provider_id=provider_id))

    @classmethod
    def failure(cls, provider_id: str, kind: ErrorKind, message: str) -> ProviderOutcome:
        return cls(error=ProviderError(provider_id=provider_id, kind=kind, message=message))


class ResponseShapeError(ValueError):
    """Raised when a provider body lacks the nested fields we read from."""


class ProviderAdapter(Protocol):
    provider_id: str
    display_name: str

    @property
    def configured(self) -> bool:
        ...

    async def invoke(self, prompt: str, language: str) -> ProviderOutcome:
        ...


def is_arabic(language: str | None) -> bool:
    return (language or "").strip().lower() in _ARABIC_TAGS


def extract_error_message(data: Any) -> str | None:
    if not isinstance(data, dict):
        return None
    error = data.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        if isinstance(message, str) and message:
            return message
    if isinstance(error, str) and error:
        return error
    return None


def first_item(container: Any, key: str) -> Any:
    """Return container[key][0], raising ResponseShapeError when absent."""
    if not isinstance(container, dict):
        raise ResponseShapeError(f"expected object holding {key!r}")
    items = container.get(key)
    if not isinstance(items, list) or not items:
        raise ResponseShapeError(f"missing {key}[0]")
    return items[0]


def require_text(value: Any, field_name: str) -> str:
    if not isinstance(value, str):
        raise ResponseShapeError(f"missing text field {field_name!r}")
    return value.strip()


class HTTPProviderAdapter:
    """Shared request/response handling for the JSON-over-HTTPS providers.

    Subclasses provide the endpoint, headers, body and text extraction; this
    class owns the timeout, the status mapping and the shape validation.
    """

    provider_id = ""
    display_name = ""

    def __init__(
        self,
        *,
        api_key: str | None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key or None
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def system_prompt(self, language: str) -> str:
        raise NotImplementedError

    def build_url(self) -> str:
        raise NotImplementedError

    def build_headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json"}

    def build_payload(self, prompt: str, language: str) -> dict[str, Any]:
        raise NotImplementedError

    def extract_text(self, data: Any) -> str:
        raise NotImplementedError

    def map_status(self, status_code: int, message: str | None) -> tuple[ErrorKind, str]:
        if status_code == 401:
            return ErrorKind.AUTH_FAILURE, f"{self.display_name}: Invalid API key"
        if status_code == 429:
            return ErrorKind.RATE_LIMITED, f"{self.display_name}: Rate limit exceeded"
        detail = message or f"HTTP {status_code}"
        return ErrorKind.UNKNOWN, f"{self.display_name}: {detail}"

    async def invoke(self, prompt: str, language: str) -> ProviderOutcome:
        if not self.configured:
            return ProviderOutcome.failure(
                self.provider_id,
                ErrorKind.NOT_CONFIGURED,
                f"{self.display_name} not configured",
            )
        if not prompt or not prompt.strip():
            return ProviderOutcome.failure(self.provider_id, ErrorKind.UNKNOWN, f"{self.display_name}: empty prompt")
        try:
            response = await asyncio.wait_for(self._post(prompt, language), timeout=self.timeout_seconds)
        except Exception as exc:
            if is_timeout_error(exc):
                return ProviderOutcome.failure(
                    self.provider_id,
                    ErrorKind.TIMEOUT,
                    f"{self.display_name}: Request timeout",
                )
            if isinstance(exc, httpx.HTTPError):
                return ProviderOutcome.failure(self.provider_id, ErrorKind.UNKNOWN, f"{self.display_name}: {exc}")
            raise

        data = _decode_json(response)
        if response.status_code // 100 != 2:
            kind, message = self.map_status(response.status_code, extract_error_message(data))
            LOGGER.warning(
                "%s API error: status=%s kind=%s",
                self.display_name,
                response.status_code,
                kind.value,
            )
            return ProviderOutcome.failure(self.provider_id, kind, message)

        try:
            text = self.extract_text(data)
        except ResponseShapeError as exc:
            return ProviderOutcome.failure(
                self.provider_id,
                ErrorKind.BAD_RESPONSE_SHAPE,
                f"Invalid response format from {self.display_name} API: {exc}",
            )
        return ProviderOutcome.success(text, self.provider_id)

    async def _post(self, prompt: str, language: str) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
            return await client.post(
                self.build_url(),
                json=self.build_payload(prompt, language),
                headers=self.build_headers(),
            )


def _decode_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None
