"""Process-wide logging setup for the gateway.

configure_logging() is called once from main() before the app is built. It
owns the root logger: one stderr handler, an optional rotating file, and a
filter that masks API keys passed in URL query strings (Gemini sends its key
that way and httpx echoes request URLs at INFO).
"""

from __future__ import annotations

import logging
import os
import re
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from chat_gateway.infra.config import get_log_level

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
FILE_MAX_BYTES = 5 * 1024 * 1024
FILE_BACKUP_COUNT = 3
# Third-party loggers that are chatty at INFO; the gateway emits its own events.
QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access")

_QUERY_KEY_RE = re.compile(r"([?&]key=)[^&\s\"']+")


class QueryKeyFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = _QUERY_KEY_RE.sub(r"\1***", message)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


def _file_handler(log_file: str, formatter: logging.Formatter) -> logging.Handler | None:
    try:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            log_file,
            maxBytes=FILE_MAX_BYTES,
            backupCount=FILE_BACKUP_COUNT,
            encoding="utf-8",
        )
    except OSError as exc:
        logging.getLogger(__name__).warning("Cannot open log file %s (%s); stderr only", log_file, exc)
        return None
    handler.setFormatter(formatter)
    return handler


def configure_logging(*, level: int | None = None, log_file: str | None = None) -> None:
    """Install the gateway's handlers on the root logger.

    Args:
        level: Root level; defaults to LOG_LEVEL from the environment (INFO).
        log_file: Path for a rotating log file; defaults to LOG_FILE. Empty
            means stderr only.
    """
    resolved_level = get_log_level() if level is None else level
    resolved_file = log_file if log_file is not None else os.environ.get("LOG_FILE", "").strip()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    redactor = QueryKeyFilter()

    handlers: list[logging.Handler] = []
    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    handlers.append(console)
    if resolved_file:
        file_handler = _file_handler(resolved_file, formatter)
        if file_handler is not None:
            handlers.append(file_handler)

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.setLevel(resolved_level)
    for handler in handlers:
        handler.setLevel(resolved_level)
        handler.addFilter(redactor)
        root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    # uvicorn runs with log_config=None; route its server logs through the root handlers.
    for name in ("uvicorn", "uvicorn.error"):
        logging.getLogger(name).propagate = True
