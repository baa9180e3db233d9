"""Prometheus metrics registry and timing helpers."""

from .registry import (
    CONTENT_TYPE_LATEST,
    InvalidLabelError,
    MetricsRegistry,
    get_metrics,
    get_metrics_json,
    get_metrics_registry,
    record_database_latency,
    record_incident_severity,
    record_processing_latency,
    reset_incident_status_counts_gauge,
    reset_metrics_registry,
    update_active_incidents_gauge,
    update_incident_status_counts_gauge,
)
from .timer import OperationTimer, create_operation_timer, start_stopwatch

__all__ = [
    "CONTENT_TYPE_LATEST",
    "InvalidLabelError",
    "MetricsRegistry",
    "OperationTimer",
    "create_operation_timer",
    "get_metrics",
    "get_metrics_json",
    "get_metrics_registry",
    "record_database_latency",
    "record_incident_severity",
    "record_processing_latency",
    "reset_incident_status_counts_gauge",
    "reset_metrics_registry",
    "start_stopwatch",
    "update_active_incidents_gauge",
    "update_incident_status_counts_gauge",
]
