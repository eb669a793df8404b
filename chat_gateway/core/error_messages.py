from __future__ import annotations

from typing import Final

from chat_gateway.infra.llm.base import ErrorKind

NOT_CONFIGURED_TEXT: Final[str] = "Provider is not configured. Add an API key to enable it."
AUTH_FAILURE_TEXT: Final[str] = "Provider rejected the API key."
RATE_LIMITED_TEXT: Final[str] = "Provider rate limit exceeded. Try again later."
TIMEOUT_TEXT: Final[str] = "Provider did not answer in time."
BAD_RESPONSE_TEXT: Final[str] = "Provider returned an unexpected response."
TEMP_UNAVAILABLE_TEXT: Final[str] = "Provider is temporarily unavailable."


def describe_error_kind(kind: ErrorKind | str) -> str:
    normalized = kind.value if isinstance(kind, ErrorKind) else kind.strip().lower()
    if normalized == ErrorKind.NOT_CONFIGURED.value:
        return NOT_CONFIGURED_TEXT
    if normalized == ErrorKind.AUTH_FAILURE.value:
        return AUTH_FAILURE_TEXT
    if normalized == ErrorKind.RATE_LIMITED.value:
        return RATE_LIMITED_TEXT
    if normalized == ErrorKind.TIMEOUT.value:
        return TIMEOUT_TEXT
    if normalized == ErrorKind.BAD_RESPONSE_SHAPE.value:
        return BAD_RESPONSE_TEXT
    return TEMP_UNAVAILABLE_TEXT
