from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

from chat_gateway.infra.resilience import CircuitBreakerConfig

LOGGER = logging.getLogger(__name__)

DEFAULT_PROVIDER = "gemini"
DEFAULT_PORT = 3000
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_LOG_LEVEL = logging.INFO

# Environment variable per provider id, in catalogue order.
PROVIDER_KEY_ENV = {
    "gemini": "GEMINI_API_KEY",
    "groq": "GROQ_API_KEY",
    "claude": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
}


@dataclass(frozen=True)
class Settings:
    gemini_api_key: str | None
    groq_api_key: str | None
    anthropic_api_key: str | None
    openai_api_key: str | None
    openai_model: str
    provider_timeout_seconds: float
    default_provider: str
    host: str
    port: int
    env: str
    circuit_failure_threshold: int
    circuit_window_seconds: float
    circuit_cooldown_seconds: float

    def provider_keys(self) -> dict[str, str | None]:
        return {
            "gemini": self.gemini_api_key,
            "groq": self.groq_api_key,
            "claude": self.anthropic_api_key,
            "openai": self.openai_api_key,
        }

    def circuit_breaker_config(self) -> CircuitBreakerConfig:
        return CircuitBreakerConfig(
            failure_threshold=self.circuit_failure_threshold,
            window_seconds=self.circuit_window_seconds,
            cooldown_seconds=self.circuit_cooldown_seconds,
        )


@dataclass(frozen=True)
class StartupFeatures:
    configured_providers: tuple[str, ...]

    @property
    def llm_enabled(self) -> bool:
        return bool(self.configured_providers)


_DEV_ENVS = {"dev", "development", "local"}


def resolve_env_label(raw_env: dict[str, str] | None = None) -> str:
    source = raw_env if raw_env is not None else os.environ
    env = source.get("APP_ENV", "prod").strip().lower()
    return "dev" if env in _DEV_ENVS else "prod"


def get_log_level(raw_env: dict[str, str] | None = None) -> int:
    source = raw_env if raw_env is not None else os.environ
    raw = source.get("LOG_LEVEL", "").strip().upper()
    if not raw:
        return DEFAULT_LOG_LEVEL
    level = logging.getLevelName(raw)
    return level if isinstance(level, int) else DEFAULT_LOG_LEVEL


def validate_startup_env(
    settings: Settings,
    *,
    logger: logging.Logger | None = None,
) -> StartupFeatures:
    """Report which providers are usable. Missing keys only force mock replies."""
    log = logger or LOGGER
    configured: list[str] = []
    for provider_id, key in settings.provider_keys().items():
        if key:
            configured.append(provider_id)
        else:
            log.warning(
                "startup.env %s missing: %s calls will return mock replies",
                PROVIDER_KEY_ENV[provider_id],
                provider_id,
            )
    if not configured:
        log.warning("startup.env llm disabled: no API key configured, mocks active")
    return StartupFeatures(configured_providers=tuple(configured))


def load_settings(raw_env: dict[str, str] | None = None) -> Settings:
    if raw_env is None:
        _load_dotenv()
    env = raw_env if raw_env is not None else os.environ

    default_provider = env.get("DEFAULT_PROVIDER", DEFAULT_PROVIDER).strip().lower() or DEFAULT_PROVIDER
    if default_provider not in PROVIDER_KEY_ENV:
        default_provider = DEFAULT_PROVIDER
    return Settings(
        gemini_api_key=_parse_secret(env.get("GEMINI_API_KEY")),
        groq_api_key=_parse_secret(env.get("GROQ_API_KEY")),
        anthropic_api_key=_parse_secret(env.get("ANTHROPIC_API_KEY")),
        openai_api_key=_parse_secret(env.get("OPENAI_API_KEY")),
        openai_model=env.get("OPENAI_MODEL", "gpt-3.5-turbo"),
        provider_timeout_seconds=_parse_optional_float(env.get("PROVIDER_TIMEOUT_SECONDS"), DEFAULT_TIMEOUT_SECONDS),
        default_provider=default_provider,
        host=env.get("HOST", "0.0.0.0"),
        port=_parse_int_with_default(env.get("PORT"), DEFAULT_PORT),
        env=resolve_env_label(dict(env)),
        circuit_failure_threshold=_parse_int_with_default(env.get("CIRCUIT_FAILURE_THRESHOLD"), 5),
        circuit_window_seconds=_parse_optional_float(env.get("CIRCUIT_WINDOW_SECONDS"), 60.0),
        circuit_cooldown_seconds=_parse_optional_float(env.get("CIRCUIT_COOLDOWN_SECONDS"), 60.0),
    )


def _load_dotenv() -> None:
    if not load_dotenv():
        LOGGER.debug(".env file not found; using process environment only")


def _parse_secret(value: str | None) -> str | None:
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None


def _parse_optional_float(value: str | None, default: float) -> float:
    if value is None:
        return default
    trimmed = value.strip()
    if not trimmed:
        return default
    return float(trimmed)


def _parse_int_with_default(value: str | None, default: int) -> int:
    if value is None:
        return default
    trimmed = value.strip()
    if not trimmed:
        return default
    return int(trimmed)
