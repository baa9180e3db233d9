"""Analytics event log and audit engine.

Records incident lifecycle events in an append-only, in-memory log, derives
per-incident status transitions, and answers audit and statistics queries
over that state. Tracking is fail-open: a failure while recording is
reported as a warning and never raised to the caller.
"""

from __future__ import annotations

import contextlib
import logging
import threading
from dataclasses import replace
from datetime import datetime, timedelta
from types import MappingProxyType
from typing import Any, Callable

from status_analytics.analytics.models import (
    INCIDENT_CREATE,
    RESOLVED,
    STATUS_CHANGE,
    AnalyticsEvent,
    EventType,
    IncidentAuditReport,
    IncidentSeverity,
    IncidentStatus,
    ObservabilityExport,
    ObservabilityStats,
    StatusTransition,
    TrackOutcome,
    TransitionGroup,
)
from status_analytics.analytics.retention import RetentionSweeper
from status_analytics.config import load_settings
from status_analytics.utils.time import ensure_utc, millis_between, utc_now

DEFAULT_MAX_EVENTS = 10_000
DEFAULT_RETENTION_INTERVAL_SECONDS = 24 * 60 * 60
DEFAULT_STATUS_WINDOW = timedelta(hours=24)

_default_logger = logging.getLogger(__name__)


class AnalyticsService:
    """Process-local analytics event log.

    All reads and writes go through a single lock, so the log order is the
    order in which ``track`` calls acquired it. Queries scan the log linearly.
    """

    def __init__(
        self,
        logger: logging.Logger | None = None,
        clock: Callable[[], datetime] = utc_now,
        max_events: int = DEFAULT_MAX_EVENTS,
        retention_interval_seconds: float = DEFAULT_RETENTION_INTERVAL_SECONDS,
        status_window: timedelta = DEFAULT_STATUS_WINDOW,
    ) -> None:
        self._logger = logger or _default_logger
        self._clock = clock
        self._max_events = max_events
        self._status_window = status_window
        self._events: list[AnalyticsEvent] = []
        self._transitions: dict[int, list[StatusTransition]] = {}
        self._lock = threading.Lock()
        self._sweeper = RetentionSweeper(retention_interval_seconds, self.enforce_retention)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the periodic retention sweep."""
        self._sweeper.start()

    def close(self) -> None:
        """Stop the periodic retention sweep. Recorded data is kept."""
        self._sweeper.stop()

    @property
    def retention_running(self) -> bool:
        return self._sweeper.running

    @property
    def max_events(self) -> int:
        return self._max_events

    # ------------------------------------------------------------------
    # Tracking
    # ------------------------------------------------------------------

    def track(self, event: AnalyticsEvent) -> TrackOutcome:
        """Record ``event``. Never raises."""
        try:
            outcome = self._record(event)
        except Exception as exc:
            outcome = TrackOutcome(event=event, error=exc)
        if not outcome.ok:
            self._report_failure(outcome)
        return outcome

    def _now(self) -> datetime:
        return ensure_utc(self._clock())

    def _record(self, event: AnalyticsEvent) -> TrackOutcome:
        timestamp = ensure_utc(event.timestamp) if event.timestamp is not None else self._now()
        # Logged events are immutable; detach metadata from the caller's dict.
        metadata = (
            MappingProxyType(dict(event.metadata)) if event.metadata is not None else None
        )
        event = replace(event, timestamp=timestamp, metadata=metadata)

        with self._lock:
            self._events.append(event)
            if (
                event.type == STATUS_CHANGE
                and event.incident_id is not None
                and event.to_status is not None
            ):
                self._transitions.setdefault(event.incident_id, []).append(
                    StatusTransition(
                        incident_id=event.incident_id,
                        from_status=event.from_status,
                        to_status=event.to_status,
                        timestamp=timestamp,
                        admin_id=event.admin_id,
                    )
                )

        try:
            self._logger.info(
                "ANALYTICS_EVENT type=%s incident_id=%s severity=%s from_status=%s to_status=%s",
                event.type,
                event.incident_id,
                event.severity,
                event.from_status,
                event.to_status,
            )
        except Exception as exc:
            return TrackOutcome(event=event, error=exc)
        return TrackOutcome(event=event)

    def _report_failure(self, outcome: TrackOutcome) -> None:
        # The sink that failed may be the one we would report to.
        with contextlib.suppress(Exception):
            self._logger.warning(
                "Failed to track analytics event type=%s incident_id=%s: %s",
                outcome.event.type,
                outcome.event.incident_id,
                outcome.error,
            )

    def track_incident_create(
        self,
        incident_id: int,
        severity: IncidentSeverity,
        admin_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> TrackOutcome:
        return self.track(
            AnalyticsEvent(
                type="incident.create",
                incident_id=incident_id,
                severity=severity,
                admin_id=admin_id,
                metadata=metadata,
            )
        )

    def track_incident_update(
        self,
        incident_id: int,
        admin_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> TrackOutcome:
        return self.track(
            AnalyticsEvent(
                type="incident.update",
                incident_id=incident_id,
                admin_id=admin_id,
                metadata=metadata,
            )
        )

    def track_incident_status_change(
        self,
        incident_id: int,
        from_status: IncidentStatus | None,
        to_status: IncidentStatus,
        admin_id: str | None = None,
    ) -> TrackOutcome:
        return self.track(
            AnalyticsEvent(
                type="incident.status_change",
                incident_id=incident_id,
                from_status=from_status,
                to_status=to_status,
                admin_id=admin_id,
            )
        )

    def track_incident_delete(self, incident_id: int, admin_id: str | None = None) -> TrackOutcome:
        return self.track(
            AnalyticsEvent(type="incident.delete", incident_id=incident_id, admin_id=admin_id)
        )

    def track_incident_view(self, incident_id: int) -> TrackOutcome:
        return self.track(AnalyticsEvent(type="incident.view", incident_id=incident_id))

    def track_admin_login(
        self,
        admin_id: str,
        user_agent: str | None = None,
        ip_address: str | None = None,
    ) -> TrackOutcome:
        return self.track(
            AnalyticsEvent(
                type="admin.login",
                admin_id=admin_id,
                user_agent=user_agent,
                ip_address=ip_address,
            )
        )

    def track_admin_logout(self, admin_id: str) -> TrackOutcome:
        return self.track(AnalyticsEvent(type="admin.logout", admin_id=admin_id))

    def track_public_status_view(
        self, user_agent: str | None = None, ip_address: str | None = None
    ) -> TrackOutcome:
        return self.track(
            AnalyticsEvent(type="public.status_view", user_agent=user_agent, ip_address=ip_address)
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_incident_transitions(self, incident_id: int) -> list[StatusTransition]:
        with self._lock:
            return list(self._transitions.get(incident_id, ()))

    def get_events(self) -> list[AnalyticsEvent]:
        with self._lock:
            return list(self._events)

    def get_events_by_type(self, event_type: EventType | str) -> list[AnalyticsEvent]:
        with self._lock:
            return [e for e in self._events if e.type == event_type]

    def get_incident_events(self, incident_id: int) -> list[AnalyticsEvent]:
        with self._lock:
            return [e for e in self._events if e.incident_id == incident_id]

    def get_incident_audit_report(self, incident_id: int) -> IncidentAuditReport:
        with self._lock:
            transitions = list(self._transitions.get(incident_id, ()))
            events = [e for e in self._events if e.incident_id == incident_id]

        resolved = next((t for t in transitions if t.to_status == RESOLVED), None)
        created = next((e for e in events if e.type == INCIDENT_CREATE), None)

        total_duration = None
        if resolved is not None and created is not None and created.timestamp is not None:
            total_duration = millis_between(created.timestamp, resolved.timestamp)

        return IncidentAuditReport(
            incident_id=incident_id,
            transitions=transitions,
            events=events,
            total_duration=total_duration,
        )

    def get_observability_stats(self) -> ObservabilityStats:
        with self._lock:
            events = list(self._events)
            transitions = {k: list(v) for k, v in self._transitions.items()}
        return self._compute_stats(events, transitions, self._now())

    def _compute_stats(
        self,
        events: list[AnalyticsEvent],
        transitions: dict[int, list[StatusTransition]],
        now: datetime,
    ) -> ObservabilityStats:
        window_start = now - self._status_window

        events_by_type: dict[str, int] = {}
        incident_ids: set[int] = set()
        created_at: dict[int, datetime] = {}
        status_changes = 0
        for event in events:
            events_by_type[event.type] = events_by_type.get(event.type, 0) + 1
            if event.incident_id is not None:
                incident_ids.add(event.incident_id)
                if event.type == INCIDENT_CREATE and event.incident_id not in created_at:
                    created_at[event.incident_id] = event.timestamp
            if event.type == STATUS_CHANGE and event.timestamp >= window_start:
                status_changes += 1

        # Resolutions whose create event is unknown count toward neither
        # numerator nor denominator.
        durations = [
            millis_between(created_at[t.incident_id], t.timestamp)
            for group in transitions.values()
            for t in group
            if t.to_status == RESOLVED and t.incident_id in created_at
        ]
        average = sum(durations) / len(durations) if durations else None

        return ObservabilityStats(
            total_events=len(events),
            total_incidents=len(incident_ids),
            total_transitions=sum(len(group) for group in transitions.values()),
            events_by_type=events_by_type,
            status_changes_last_24h=status_changes,
            average_resolution_time=average,
        )

    def export_observability_data(self) -> ObservabilityExport:
        with self._lock:
            events = list(self._events)
            transitions = {k: list(v) for k, v in self._transitions.items()}
        groups = [
            TransitionGroup(incident_id=incident_id, transitions=group)
            for incident_id, group in transitions.items()
            if group
        ]
        return ObservabilityExport(
            events=events,
            transitions=groups,
            stats=self._compute_stats(events, transitions, self._now()),
        )

    # ------------------------------------------------------------------
    # Retention
    # ------------------------------------------------------------------

    def enforce_retention(self, max_events: int | None = None) -> int:
        """Drop the oldest events beyond ``max_events``. Returns the number removed."""
        limit = self._max_events if max_events is None else max_events
        with self._lock:
            excess = len(self._events) - limit
            if excess <= 0:
                return 0
            del self._events[:excess]
        self._logger.info("Analytics event log cleaned up events_removed=%d", excess)
        return excess


_service: AnalyticsService | None = None
_service_lock = threading.Lock()


def build_analytics_service() -> AnalyticsService:
    """Create an ``AnalyticsService`` configured from settings."""
    settings = load_settings().analytics
    return AnalyticsService(
        max_events=settings.max_events,
        retention_interval_seconds=settings.retention_interval_seconds,
        status_window=timedelta(hours=settings.status_window_hours),
    )


def get_analytics_service() -> AnalyticsService:
    """Lazily initialise and return the process-wide analytics service."""
    global _service
    if _service is not None:
        return _service
    with _service_lock:
        if _service is None:
            service = build_analytics_service()
            if load_settings().analytics.retention_enabled:
                service.start()
            _service = service
        return _service


def close_analytics_service() -> None:
    """Stop and forget the process-wide analytics service."""
    global _service
    with _service_lock:
        service, _service = _service, None
    if service is not None:
        service.close()


def track_event(event_type: EventType, **fields: Any) -> TrackOutcome:
    """Track an event of ``event_type`` on the process-wide service, stamped now."""
    service = get_analytics_service()
    fields.pop("timestamp", None)
    try:
        event = AnalyticsEvent(type=event_type, timestamp=utc_now(), **fields)
    except TypeError as exc:
        outcome = TrackOutcome(event=AnalyticsEvent(type=event_type), error=exc)
        service._report_failure(outcome)
        return outcome
    return service.track(event)
