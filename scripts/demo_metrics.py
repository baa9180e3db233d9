
import os
import sys

# Ensure src is in path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../src')))

from status_analytics.analytics import AnalyticsService
from status_analytics.logging_utils import configure_logging
from status_analytics.metrics import MetricsRegistry, OperationTimer, start_stopwatch


def demo():
    configure_logging()

    analytics = AnalyticsService()
    metrics = MetricsRegistry(default_collectors=False)

    with OperationTimer("create", registry=metrics):
        analytics.track_incident_create(1, "high", "admin", {"title": "API latency"})
        elapsed = start_stopwatch()
        analytics.track_incident_update(1, "admin", {"field": "description"})
        metrics.record_database_latency("insert", "incidents", elapsed())
        metrics.record_incident_severity("high")

    with OperationTimer("status_change", registry=metrics):
        analytics.track_incident_status_change(1, None, "investigating", "admin")
        analytics.track_incident_status_change(1, "investigating", "resolved", "admin")
        metrics.record_database_latency("update", "incidents", 0.008)

    analytics.track_public_status_view()

    metrics.update_active_incidents_gauge(0)
    metrics.update_incident_status_counts_gauge({"resolved": 1})

    print("Audit report:")
    print(analytics.get_incident_audit_report(1).to_dict())
    print()
    print("Observability stats:")
    print(analytics.get_observability_stats().to_dict())
    print()
    print("Prometheus exposition:")
    print(metrics.get_metrics())


if __name__ == "__main__":
    demo()
