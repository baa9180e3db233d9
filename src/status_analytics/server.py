"""Entrypoint for the status analytics HTTP service."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

if __package__ in (None, ""):
    sys.path.insert(0, str(Path(__file__).resolve().parents[1]))  # pragma: no cover

from status_analytics import __version__
from status_analytics.config import load_settings
from status_analytics.logging_utils import configure_logging


def run_entrypoint() -> None:
    """Serve the report and metrics endpoints with uvicorn."""
    settings = load_settings()
    configure_logging(settings)
    from status_analytics.transport.http_server import create_http_app

    try:
        import uvicorn
    except ImportError as exc:
        raise RuntimeError("uvicorn is required to serve the status analytics API") from exc

    logging.info("Initializing status analytics service v%s", __version__)
    logging.info("Log file configured at: %s", settings.logging.file)

    app = create_http_app()
    uvicorn.run(
        app,
        host=settings.server.host,
        port=settings.server.port,
        ws="none",
        log_config=None,
    )


if __name__ == "__main__":  # pragma: no cover
    run_entrypoint()
