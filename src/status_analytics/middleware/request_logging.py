"""Request logging middleware for the report and metrics endpoints."""

from __future__ import annotations

import logging
import re
import time
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

# Control character pattern for log injection prevention.
_CONTROL_CHAR_RE = re.compile(r"[\x00-\x08\x0a-\x1f\x7f]")


def _sanitize_log_value(value: str) -> str:
    """Replace control characters (newlines, tabs, etc.) to prevent log injection."""
    return _CONTROL_CHAR_RE.sub("_", value)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log the start and end of each request with its id, status and duration."""

    # Scrape and health-check traffic is too frequent to be worth a log line.
    EXEMPT_PATHS = frozenset({"/health", "/metrics"})

    def __init__(self, app: Callable, exempt_paths: tuple[str, ...] = ()) -> None:
        super().__init__(app)
        self.exempt_paths = self.EXEMPT_PATHS | set(exempt_paths)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.exempt_paths:
            return await call_next(request)

        request_id = _sanitize_log_value(request.headers.get("x-request-id", str(uuid.uuid4())))
        safe_path = _sanitize_log_value(request.url.path)
        start_time = time.perf_counter()

        logger.info(
            "REQUEST_START request_id=%s method=%s path=%s",
            request_id,
            request.method,
            safe_path,
        )

        error_message: str | None = None
        status_code: int = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers["x-request-id"] = request_id
            return response

        except Exception as e:
            error_message = _sanitize_log_value(str(e))
            raise

        finally:
            duration_ms = int((time.perf_counter() - start_time) * 1000)
            if error_message:
                logger.error(
                    "REQUEST_END request_id=%s method=%s path=%s status=%s duration_ms=%d error=%s",
                    request_id,
                    request.method,
                    safe_path,
                    status_code,
                    duration_ms,
                    error_message,
                )
            else:
                logger.info(
                    "REQUEST_END request_id=%s method=%s path=%s status=%s duration_ms=%d",
                    request_id,
                    request.method,
                    safe_path,
                    status_code,
                    duration_ms,
                )
