from __future__ import annotations

import os
from importlib import metadata

DISTRIBUTION_NAME = "chat-gateway"


def resolve_app_version() -> str:
    for key in ("APP_VERSION", "GIT_SHA", "BUILD_ID"):
        value = os.getenv(key)
        if value:
            return value.strip()
    try:
        return metadata.version(DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        return "unknown"
