"""Incident lifecycle event log and audit reporting."""

from .models import (
    EVENT_TYPES,
    SEVERITIES,
    STATUSES,
    AnalyticsEvent,
    IncidentAuditReport,
    ObservabilityExport,
    ObservabilityStats,
    StatusTransition,
    TrackOutcome,
    TransitionGroup,
)
from .retention import RetentionSweeper
from .service import (
    AnalyticsService,
    close_analytics_service,
    get_analytics_service,
    track_event,
)

__all__ = [
    "EVENT_TYPES",
    "SEVERITIES",
    "STATUSES",
    "AnalyticsEvent",
    "AnalyticsService",
    "IncidentAuditReport",
    "ObservabilityExport",
    "ObservabilityStats",
    "RetentionSweeper",
    "StatusTransition",
    "TrackOutcome",
    "TransitionGroup",
    "close_analytics_service",
    "get_analytics_service",
    "track_event",
]
