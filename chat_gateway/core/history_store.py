from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from chat_gateway.core.errors import UserNotFoundError
from chat_gateway.core.users import UserStore

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistoryEntry:
    user_message: str
    ai_response: str
    provider_id: str
    language: str
    timestamp: datetime
    response_time_ms: int | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "userMessage": self.user_message,
            "aiResponse": self.ai_response,
            "model": self.provider_id,
            "language": self.language,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.response_time_ms is not None:
            payload["responseTime"] = self.response_time_ms
        return payload


def new_entry(
    user_message: str,
    ai_response: str,
    *,
    provider_id: str,
    language: str = "en",
    response_time_ms: int | None = None,
    timestamp: datetime | None = None,
) -> HistoryEntry:
    return HistoryEntry(
        user_message=user_message,
        ai_response=ai_response,
        provider_id=provider_id,
        language=language,
        timestamp=timestamp or datetime.now(timezone.utc),
        response_time_ms=response_time_ms,
    )


class HistoryStore:
    """Append-only chat log per user email.

    Every operation checks the user table first; unknown emails raise
    UserNotFoundError. Entries are never edited, only the whole log is cleared.
    """

    def __init__(self, users: UserStore) -> None:
        self._users = users
        self._histories: dict[str, list[HistoryEntry]] = {}
        users.on_created(self._create_history)

    def append(self, email: str, entry: HistoryEntry) -> None:
        self._ensure_user(email)
        self._histories.setdefault(email, []).append(entry)
        LOGGER.debug("history.append email=%s size=%s", email, len(self._histories[email]))

    def read(self, email: str) -> list[HistoryEntry]:
        self._ensure_user(email)
        return list(self._histories.get(email, []))

    def clear(self, email: str) -> None:
        self._ensure_user(email)
        self._histories[email] = []
        LOGGER.info("history.clear email=%s", email)

    def count(self, email: str) -> int:
        self._ensure_user(email)
        return len(self._histories.get(email, []))

    def _create_history(self, email: str) -> None:
        self._histories.setdefault(email, [])

    def _ensure_user(self, email: str) -> None:
        if not self._users.exists(email):
            raise UserNotFoundError(email)
