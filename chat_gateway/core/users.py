"""In-memory user table.

Passwords are kept and compared as plain strings, exactly like the login flow
this gateway replaces. Hashing is intentionally not part of this module.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from chat_gateway.core.errors import InvalidCredentialsError, UserExistsError, ValidationError

LOGGER = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


@dataclass
class User:
    email: str
    password: str
    created_at: datetime
    last_login: datetime | None = None

    def to_public_dict(self) -> dict[str, str | None]:
        return {
            "email": self.email,
            "createdAt": self.created_at.isoformat(),
            "lastLogin": self.last_login.isoformat() if self.last_login else None,
        }


def validate_credentials(email: object, password: object) -> tuple[str, str]:
    if not email or not password:
        raise ValidationError("Email and password required")
    if not isinstance(email, str) or not isinstance(password, str):
        raise ValidationError("Email and password must be strings")
    if "@" not in email:
        raise ValidationError("Invalid email format")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return email, password


class UserStore:
    def __init__(self, *, now_provider: Callable[[], datetime] | None = None) -> None:
        self._now = now_provider or (lambda: datetime.now(timezone.utc))
        self._users: dict[str, User] = {}
        self._listeners: list[Callable[[str], None]] = []

    def on_created(self, listener: Callable[[str], None]) -> None:
        self._listeners.append(listener)

    def exists(self, email: str | None) -> bool:
        return bool(email) and email in self._users

    def get(self, email: str) -> User | None:
        return self._users.get(email)

    def create(self, email: object, password: object) -> User:
        email, password = validate_credentials(email, password)
        if email in self._users:
            raise UserExistsError(email)
        user = User(email=email, password=password, created_at=self._now())
        self._users[email] = user
        for listener in self._listeners:
            listener(email)
        LOGGER.info("New user created: %s", email)
        return user

    def authenticate(self, email: object, password: object) -> User:
        email, password = validate_credentials(email, password)
        user = self._users.get(email)
        if user is None or user.password != password:
            raise InvalidCredentialsError()
        user.last_login = self._now()
        return user

    def __len__(self) -> int:
        return len(self._users)
