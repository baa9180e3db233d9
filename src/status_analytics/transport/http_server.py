"""Starlette HTTP server assembly for analytics reports and metrics scraping."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Route

from status_analytics.analytics.models import EVENT_TYPES
from status_analytics.app import AppContext, get_app_context
from status_analytics.metrics.timer import OperationTimer
from status_analytics.middleware.request_logging import RequestLoggingMiddleware

logger = logging.getLogger(__name__)


def _success(data: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse({"success": True, "data": data}, status_code=status_code)


def _failure(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        {"success": False, "error": {"code": code, "message": message}},
        status_code=status_code,
    )


def _parse_incident_id(raw: str) -> int | None:
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def create_http_app(context: AppContext | None = None) -> Starlette:
    """Create the HTTP application serving report endpoints and the metrics scrape."""
    ctx = context if context is not None else get_app_context()
    analytics = ctx.analytics
    metrics = ctx.metrics

    async def health_handler(request: Request) -> Response:
        return JSONResponse({"status": "healthy"})

    async def metrics_handler(request: Request) -> Response:
        try:
            body = metrics.get_metrics()
        except Exception:
            logger.exception("Failed to generate Prometheus metrics")
            return PlainTextResponse("Failed to generate metrics", status_code=500)
        return Response(body, media_type=metrics.content_type)

    async def metrics_json_handler(request: Request) -> Response:
        try:
            families = metrics.get_metrics_json()
        except Exception:
            logger.exception("Failed to collect metrics as JSON")
            return _failure(500, "INTERNAL_ERROR", "Failed to collect metrics")
        return _success(families)

    async def events_handler(request: Request) -> Response:
        timer = OperationTimer("stats", registry=metrics)
        event_type = request.query_params.get("type")
        raw_incident_id = request.query_params.get("incident_id")

        if event_type is not None and event_type not in EVENT_TYPES:
            timer.end("error")
            return _failure(400, "INVALID_EVENT_TYPE", f"Unknown event type: {event_type}")

        incident_id = None
        if raw_incident_id is not None:
            incident_id = _parse_incident_id(raw_incident_id)
            if incident_id is None:
                timer.end("error")
                return _failure(400, "INVALID_ID", "Invalid incident ID")

        try:
            if incident_id is not None:
                events = analytics.get_incident_events(incident_id)
                if event_type is not None:
                    events = [e for e in events if e.type == event_type]
            elif event_type is not None:
                events = analytics.get_events_by_type(event_type)
            else:
                events = analytics.get_events()
            payload = {"events": [e.to_dict() for e in events], "total": len(events)}
        except Exception:
            logger.exception("Failed to get analytics events")
            timer.end("error")
            return _failure(500, "INTERNAL_ERROR", "Failed to retrieve analytics events")

        logger.info("Retrieved analytics events count=%d", len(events))
        timer.end("success")
        return _success(payload)

    async def audit_report_handler(request: Request) -> Response:
        incident_id = _parse_incident_id(request.path_params["incident_id"])
        if incident_id is None:
            return _failure(400, "INVALID_ID", "Invalid incident ID")
        try:
            report = analytics.get_incident_audit_report(incident_id)
        except Exception:
            logger.exception("Failed to get incident audit report id=%s", incident_id)
            return _failure(500, "INTERNAL_ERROR", "Failed to retrieve audit report")
        return _success(report.to_dict())

    async def stats_handler(request: Request) -> Response:
        try:
            stats = analytics.get_observability_stats()
        except Exception:
            logger.exception("Failed to get observability statistics")
            return _failure(500, "INTERNAL_ERROR", "Failed to retrieve statistics")
        return _success(stats.to_dict())

    async def export_handler(request: Request) -> Response:
        try:
            data = analytics.export_observability_data()
        except Exception:
            logger.exception("Failed to export analytics data")
            return _failure(500, "INTERNAL_ERROR", "Failed to export analytics data")
        logger.info(
            "Exported analytics data events=%d incidents=%d",
            len(data.events),
            len(data.transitions),
        )
        return _success(data.to_dict())

    routes = [
        Route("/health", endpoint=health_handler, methods=["GET"]),
        Route("/metrics", endpoint=metrics_handler, methods=["GET"]),
        Route("/admin/metrics.json", endpoint=metrics_json_handler, methods=["GET"]),
        Route("/admin/analytics/events", endpoint=events_handler, methods=["GET"]),
        Route(
            "/admin/analytics/incidents/{incident_id}",
            endpoint=audit_report_handler,
            methods=["GET"],
        ),
        Route("/admin/analytics/stats", endpoint=stats_handler, methods=["GET"]),
        Route("/admin/analytics/export", endpoint=export_handler, methods=["GET"]),
    ]

    @asynccontextmanager
    async def lifespan(app: Starlette):
        logger.info("Starting status analytics HTTP server...")
        if ctx.settings.analytics.retention_enabled:
            analytics.start()
        try:
            yield
        finally:
            logger.info("Stopping status analytics HTTP server...")
            analytics.close()

    return Starlette(
        routes=routes,
        middleware=[Middleware(RequestLoggingMiddleware)],
        lifespan=lifespan,
    )
