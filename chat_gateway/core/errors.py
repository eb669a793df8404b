from __future__ import annotations


class GatewayError(Exception):
    """Base class for errors the HTTP layer turns into client responses."""

    status_code = 500


class ValidationError(GatewayError):
    status_code = 400


class UserNotFoundError(GatewayError):
    status_code = 404

    def __init__(self, email: str) -> None:
        super().__init__("User not found")
        self.email = email


class UserExistsError(GatewayError):
    status_code = 400

    def __init__(self, email: str) -> None:
        super().__init__("User already exists")
        self.email = email


class InvalidCredentialsError(GatewayError):
    status_code = 401

    def __init__(self) -> None:
        super().__init__("Invalid credentials")
