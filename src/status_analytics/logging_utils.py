"""Logging setup for the status analytics service.

Every record goes to stderr and, when ``LOG_FILE`` is set, to that file, in
the ``time | level | logger | message`` layout that the ``ANALYTICS_EVENT``
and ``REQUEST_*`` lines are written for.
"""

from __future__ import annotations

import logging
import sys
import threading
from pathlib import Path

from status_analytics.config import Settings, load_settings

_logging_configured = False
_logging_lock = threading.Lock()

_logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# RequestLoggingMiddleware already writes one REQUEST_END line per request.
QUIET_LOGGERS = ("uvicorn.access",)


def _build_handlers(log_file: str | None) -> list[logging.Handler]:
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    handlers: list[logging.Handler] = [stream_handler]

    if log_file:
        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file)
        except OSError as exc:
            _logger.warning("Failed to open log file %s: %s", log_file, exc)
        else:
            file_handler.setFormatter(formatter)
            handlers.append(file_handler)
    return handlers


def configure_logging(settings: Settings | None = None) -> None:
    """Install the service's handlers on the root logger.

    ``settings`` defaults to the cached process settings.
    """
    global _logging_configured

    settings = settings if settings is not None else load_settings()
    level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    logging.basicConfig(level=level, handlers=_build_handlers(settings.logging.file), force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    _logging_configured = True


def get_logger(name: str) -> logging.Logger:
    if not _logging_configured:
        with _logging_lock:
            if not _logging_configured:
                configure_logging()
    return logging.getLogger(name)
