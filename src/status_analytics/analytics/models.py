"""Data models for analytics events and derived audit records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal, Mapping

from status_analytics.utils.time import to_iso

EventType = Literal[
    "incident.create",
    "incident.update",
    "incident.status_change",
    "incident.delete",
    "incident.view",
    "admin.login",
    "admin.logout",
    "public.status_view",
]
IncidentSeverity = Literal["low", "medium", "high", "critical"]
IncidentStatus = Literal["investigating", "identified", "monitoring", "resolved"]

EVENT_TYPES: frozenset[str] = frozenset(
    {
        "incident.create",
        "incident.update",
        "incident.status_change",
        "incident.delete",
        "incident.view",
        "admin.login",
        "admin.logout",
        "public.status_view",
    }
)
SEVERITIES: tuple[str, ...] = ("low", "medium", "high", "critical")
STATUSES: tuple[str, ...] = ("investigating", "identified", "monitoring", "resolved")

STATUS_CHANGE: EventType = "incident.status_change"
INCIDENT_CREATE: EventType = "incident.create"
RESOLVED: IncidentStatus = "resolved"


@dataclass(frozen=True)
class AnalyticsEvent:
    """One observed action. ``timestamp`` is filled in at track time when omitted."""

    type: EventType
    timestamp: datetime | None = None
    incident_id: int | None = None
    severity: IncidentSeverity | None = None
    from_status: IncidentStatus | None = None
    to_status: IncidentStatus | None = None
    admin_id: str | None = None
    user_agent: str | None = None
    ip_address: str | None = None
    metadata: Mapping[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "timestamp": to_iso(self.timestamp) if self.timestamp else None,
            "incident_id": self.incident_id,
            "severity": self.severity,
            "from_status": self.from_status,
            "to_status": self.to_status,
            "admin_id": self.admin_id,
            "user_agent": self.user_agent,
            "ip_address": self.ip_address,
            "metadata": dict(self.metadata) if self.metadata is not None else None,
        }


@dataclass(frozen=True)
class StatusTransition:
    incident_id: int
    from_status: IncidentStatus | None
    to_status: IncidentStatus
    timestamp: datetime
    admin_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "incident_id": self.incident_id,
            "from_status": self.from_status,
            "to_status": self.to_status,
            "timestamp": to_iso(self.timestamp),
            "admin_id": self.admin_id,
        }


@dataclass(frozen=True)
class TrackOutcome:
    """Result of a ``track`` call.

    ``error`` carries whatever went wrong while recording; the event may still
    have been appended to the log (for example when only the log sink failed).
    """

    event: AnalyticsEvent
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class IncidentAuditReport:
    incident_id: int
    transitions: list[StatusTransition]
    events: list[AnalyticsEvent]
    total_duration: float | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "incident_id": self.incident_id,
            "transitions": [t.to_dict() for t in self.transitions],
            "events": [e.to_dict() for e in self.events],
        }
        if self.total_duration is not None:
            data["total_duration"] = self.total_duration
        return data


@dataclass
class ObservabilityStats:
    total_events: int
    total_incidents: int
    total_transitions: int
    events_by_type: dict[str, int] = field(default_factory=dict)
    status_changes_last_24h: int = 0
    average_resolution_time: float | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "total_events": self.total_events,
            "total_incidents": self.total_incidents,
            "total_transitions": self.total_transitions,
            "events_by_type": dict(self.events_by_type),
            "status_changes_last_24h": self.status_changes_last_24h,
        }
        if self.average_resolution_time is not None:
            data["average_resolution_time"] = self.average_resolution_time
        return data


@dataclass
class TransitionGroup:
    incident_id: int
    transitions: list[StatusTransition]

    def to_dict(self) -> dict[str, Any]:
        return {
            "incident_id": self.incident_id,
            "transitions": [t.to_dict() for t in self.transitions],
        }


@dataclass
class ObservabilityExport:
    events: list[AnalyticsEvent]
    transitions: list[TransitionGroup]
    stats: ObservabilityStats

    def to_dict(self) -> dict[str, Any]:
        return {
            "events": [e.to_dict() for e in self.events],
            "transitions": [g.to_dict() for g in self.transitions],
            "stats": self.stats.to_dict(),
        }
