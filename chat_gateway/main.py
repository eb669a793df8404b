from __future__ import annotations

import logging

import uvicorn
from fastapi import FastAPI

from chat_gateway.core.gateway import ChatGateway
from chat_gateway.infra.config import Settings, load_settings, validate_startup_env
from chat_gateway.infra.logging_config import configure_logging
from chat_gateway.web.api import create_app

LOGGER = logging.getLogger(__name__)


def build_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or load_settings()
    features = validate_startup_env(settings)
    gateway = ChatGateway.from_settings(settings)
    LOGGER.info(
        "startup.ready providers=%s default=%s mocks_active=%s",
        ",".join(features.configured_providers) or "-",
        settings.default_provider,
        not features.llm_enabled,
    )
    return create_app(gateway)


def main() -> None:
    configure_logging()
    settings = load_settings()
    app = build_app(settings)
    LOGGER.info("Chat gateway listening on http://%s:%s/api", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
