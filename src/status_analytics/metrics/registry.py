"""Prometheus metrics for incident processing latency and incident state."""

from __future__ import annotations

import logging
import threading
from typing import Any, Literal, Mapping

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    GCCollector,
    Histogram,
    PlatformCollector,
    ProcessCollector,
    disable_created_metrics,
    generate_latest,
)

from status_analytics.analytics.models import SEVERITIES, STATUSES
from status_analytics.config import load_settings

logger = logging.getLogger(__name__)

ProcessingOperation = Literal[
    "create", "update", "status_change", "list", "get", "delete", "stats", "clear"
]
DatabaseOperation = Literal["insert", "select", "update", "delete"]
OperationStatus = Literal["success", "error"]

PROCESSING_OPERATIONS: frozenset[str] = frozenset(
    {"create", "update", "status_change", "list", "get", "delete", "stats", "clear"}
)
DATABASE_OPERATIONS: frozenset[str] = frozenset({"insert", "select", "update", "delete"})
OPERATION_STATUSES: frozenset[str] = frozenset({"success", "error"})

PROCESSING_LATENCY_BUCKETS = (0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10)
DATABASE_LATENCY_BUCKETS = (0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5)
# One bucket boundary between each ordinal, so each severity lands in its own bucket.
SEVERITY_BUCKETS = (0.5, 1.5, 2.5, 3.5)
SEVERITY_VALUES: dict[str, int] = {"low": 1, "medium": 2, "high": 3, "critical": 4}

DEFAULT_NAMESPACE = "status_service"


class InvalidLabelError(ValueError):
    """Raised when a label value is outside the closed set for its series."""

    def __init__(self, label: str, value: object, allowed: frozenset[str] | tuple[str, ...]):
        self.label = label
        self.value = value
        super().__init__(
            f"Invalid value {value!r} for label '{label}'; expected one of {sorted(allowed)}"
        )


def _check_label(label: str, value: object, allowed: frozenset[str] | tuple[str, ...]) -> None:
    if value not in allowed:
        raise InvalidLabelError(label, value, allowed)


class MetricsRegistry:
    """Owns a ``CollectorRegistry`` and the service's custom series."""

    def __init__(
        self,
        namespace: str = DEFAULT_NAMESPACE,
        default_collectors: bool = True,
        strict_labels: bool = False,
        registry: CollectorRegistry | None = None,
    ) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()
        self.namespace = namespace
        self.strict_labels = strict_labels
        self._lock = threading.Lock()

        # Expose one data line per label set, without the *_created series.
        disable_created_metrics()

        if default_collectors:
            ProcessCollector(registry=self.registry)
            PlatformCollector(registry=self.registry)
            GCCollector(registry=self.registry)

        self.processing_latency = Histogram(
            f"{namespace}_admin_processing_latency_seconds",
            "Latency of admin incident processing operations in seconds",
            labelnames=("operation", "status"),
            buckets=PROCESSING_LATENCY_BUCKETS,
            registry=self.registry,
        )
        self.database_latency = Histogram(
            f"{namespace}_admin_database_operation_latency_seconds",
            "Latency of database operations in seconds",
            labelnames=("operation", "table"),
            buckets=DATABASE_LATENCY_BUCKETS,
            registry=self.registry,
        )
        self.operations_total = Counter(
            f"{namespace}_admin_operations_total",
            "Total number of admin operations",
            labelnames=("operation", "status"),
            registry=self.registry,
        )
        self.active_incidents = Gauge(
            f"{namespace}_active_incidents",
            "Number of active (non-resolved) incidents",
            registry=self.registry,
        )
        self.incident_status_counts = Gauge(
            f"{namespace}_incident_status_counts",
            "Number of incidents by status",
            labelnames=("status",),
            registry=self.registry,
        )
        self.incident_severity = Histogram(
            f"{namespace}_incident_severity",
            "Distribution of incident severities",
            labelnames=("severity",),
            buckets=SEVERITY_BUCKETS,
            registry=self.registry,
        )

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def _recording_failed(self, operation: str, exc: Exception) -> None:
        if self.strict_labels:
            raise exc
        logger.warning("Failed to record metric operation=%s: %s", operation, exc)

    def record_processing_latency(
        self, operation: ProcessingOperation, status: OperationStatus, seconds: float
    ) -> None:
        """Observe one operation's latency and count it."""
        try:
            _check_label("operation", operation, PROCESSING_OPERATIONS)
            _check_label("status", status, OPERATION_STATUSES)
            self.processing_latency.labels(operation=operation, status=status).observe(seconds)
            self.operations_total.labels(operation=operation, status=status).inc()
        except Exception as exc:
            self._recording_failed("record_processing_latency", exc)

    def record_database_latency(
        self, operation: DatabaseOperation, table: str, seconds: float
    ) -> None:
        try:
            _check_label("operation", operation, DATABASE_OPERATIONS)
            if not isinstance(table, str) or not table:
                raise InvalidLabelError("table", table, ("<non-empty table name>",))
            self.database_latency.labels(operation=operation, table=table).observe(seconds)
        except Exception as exc:
            self._recording_failed("record_database_latency", exc)

    def update_active_incidents_gauge(self, count: float) -> None:
        try:
            self.active_incidents.set(count)
        except Exception as exc:
            self._recording_failed("update_active_incidents_gauge", exc)

    def update_incident_status_counts_gauge(self, counts: Mapping[str, float]) -> None:
        """Set every status series from ``counts``; statuses not present are set to zero."""
        try:
            unknown = set(counts) - set(STATUSES)
            if unknown:
                raise InvalidLabelError("status", sorted(unknown)[0], STATUSES)
            with self._lock:
                for status in STATUSES:
                    self.incident_status_counts.labels(status=status).set(counts.get(status, 0))
        except Exception as exc:
            self._recording_failed("update_incident_status_counts_gauge", exc)

    def reset_incident_status_counts_gauge(self) -> None:
        """Zero every status series so cleared incidents leave no stale readings."""
        try:
            with self._lock:
                for status in STATUSES:
                    self.incident_status_counts.labels(status=status).set(0)
        except Exception as exc:
            self._recording_failed("reset_incident_status_counts_gauge", exc)

    def record_incident_severity(self, severity: str) -> None:
        try:
            _check_label("severity", severity, SEVERITIES)
            self.incident_severity.labels(severity=severity).observe(SEVERITY_VALUES[severity])
        except Exception as exc:
            self._recording_failed("record_incident_severity", exc)

    # ------------------------------------------------------------------
    # Exposition
    # ------------------------------------------------------------------

    @property
    def content_type(self) -> str:
        return CONTENT_TYPE_LATEST

    def get_metrics(self) -> str:
        """Render a fresh snapshot in the Prometheus text exposition format."""
        with self._lock:
            return generate_latest(self.registry).decode("utf-8")

    def get_metrics_json(self) -> list[dict[str, Any]]:
        """Structured equivalent of ``get_metrics`` for debugging."""
        families: list[dict[str, Any]] = []
        with self._lock:
            collected = list(self.registry.collect())
        for family in collected:
            families.append(
                {
                    "name": family.name,
                    "help": family.documentation,
                    "type": family.type,
                    "values": [
                        {
                            "metric_name": sample.name,
                            "labels": dict(sample.labels),
                            "value": sample.value,
                        }
                        for sample in family.samples
                    ],
                }
            )
        return families


_registry: MetricsRegistry | None = None
_registry_lock = threading.Lock()


def build_metrics_registry() -> MetricsRegistry:
    settings = load_settings().metrics
    return MetricsRegistry(
        namespace=settings.namespace,
        default_collectors=settings.default_collectors,
        strict_labels=settings.strict_labels,
    )


def get_metrics_registry() -> MetricsRegistry:
    """Lazily initialise and return the process-wide metrics registry."""
    global _registry
    if _registry is not None:
        return _registry
    with _registry_lock:
        if _registry is None:
            _registry = build_metrics_registry()
        return _registry


def reset_metrics_registry() -> None:
    """Forget the process-wide registry; the next access builds a fresh one."""
    global _registry
    with _registry_lock:
        _registry = None


def record_processing_latency(
    operation: ProcessingOperation, status: OperationStatus, seconds: float
) -> None:
    get_metrics_registry().record_processing_latency(operation, status, seconds)


def record_database_latency(operation: DatabaseOperation, table: str, seconds: float) -> None:
    get_metrics_registry().record_database_latency(operation, table, seconds)


def update_active_incidents_gauge(count: float) -> None:
    get_metrics_registry().update_active_incidents_gauge(count)


def update_incident_status_counts_gauge(counts: Mapping[str, float]) -> None:
    get_metrics_registry().update_incident_status_counts_gauge(counts)


def reset_incident_status_counts_gauge() -> None:
    get_metrics_registry().reset_incident_status_counts_gauge()


def record_incident_severity(severity: str) -> None:
    get_metrics_registry().record_incident_severity(severity)


def get_metrics() -> str:
    return get_metrics_registry().get_metrics()


def get_metrics_json() -> list[dict[str, Any]]:
    return get_metrics_registry().get_metrics_json()
