from __future__ import annotations

import pytest

from status_analytics.metrics import registry as registry_module
from status_analytics.metrics.registry import (
    CONTENT_TYPE_LATEST,
    InvalidLabelError,
    MetricsRegistry,
)

LATENCY = "status_service_admin_processing_latency_seconds"
DB_LATENCY = "status_service_admin_database_operation_latency_seconds"
OPERATIONS = "status_service_admin_operations_total"
STATUS_COUNTS = "status_service_incident_status_counts"
SEVERITY = "status_service_incident_severity"


def _sample(metrics: MetricsRegistry, name: str, labels: dict[str, str] | None = None):
    return metrics.registry.get_sample_value(name, labels or {})


def test_record_processing_latency_pairs_counter(metrics):
    metrics.record_processing_latency("create", "success", 0.05)
    metrics.record_processing_latency("create", "success", 0.2)
    metrics.record_processing_latency("update", "error", 0.1)

    labels = {"operation": "create", "status": "success"}
    assert _sample(metrics, f"{LATENCY}_count", labels) == 2
    assert _sample(metrics, f"{LATENCY}_sum", labels) == pytest.approx(0.25)
    assert _sample(metrics, OPERATIONS, labels) == 2
    assert _sample(metrics, OPERATIONS, {"operation": "update", "status": "error"}) == 1

    text = metrics.get_metrics()
    assert LATENCY in text
    assert 'operation="update"' in text
    assert 'status="error"' in text


def test_processing_latency_buckets(metrics):
    metrics.record_processing_latency("list", "success", 0.03)

    labels = {"operation": "list", "status": "success"}
    assert _sample(metrics, f"{LATENCY}_bucket", {**labels, "le": "0.025"}) == 0
    assert _sample(metrics, f"{LATENCY}_bucket", {**labels, "le": "0.05"}) == 1
    assert _sample(metrics, f"{LATENCY}_bucket", {**labels, "le": "10.0"}) == 1


def test_record_database_latency(metrics):
    metrics.record_database_latency("insert", "incidents", 0.025)

    labels = {"operation": "insert", "table": "incidents"}
    assert _sample(metrics, f"{DB_LATENCY}_count", labels) == 1
    text = metrics.get_metrics()
    assert DB_LATENCY in text
    assert 'table="incidents"' in text


def test_update_active_incidents_gauge(metrics):
    metrics.update_active_incidents_gauge(5)
    assert _sample(metrics, "status_service_active_incidents") == 5

    metrics.update_active_incidents_gauge(2)
    assert _sample(metrics, "status_service_active_incidents") == 2


def test_update_incident_status_counts_exposition(metrics):
    metrics.update_incident_status_counts_gauge(
        {"investigating": 2, "identified": 1, "monitoring": 3, "resolved": 4}
    )

    text = metrics.get_metrics()
    assert f'{STATUS_COUNTS}{{status="investigating"}} 2.0' in text
    assert f'{STATUS_COUNTS}{{status="identified"}} 1.0' in text
    assert f'{STATUS_COUNTS}{{status="monitoring"}} 3.0' in text
    assert f'{STATUS_COUNTS}{{status="resolved"}} 4.0' in text


def test_update_incident_status_counts_missing_status_is_zero(metrics):
    metrics.update_incident_status_counts_gauge({"investigating": 7})

    assert _sample(metrics, STATUS_COUNTS, {"status": "investigating"}) == 7
    assert _sample(metrics, STATUS_COUNTS, {"status": "resolved"}) == 0


def test_reset_incident_status_counts_shows_all_labels_at_zero(metrics):
    metrics.update_incident_status_counts_gauge(
        {"investigating": 5, "identified": 3, "monitoring": 2, "resolved": 10}
    )

    metrics.reset_incident_status_counts_gauge()

    text = metrics.get_metrics()
    for status in ("investigating", "identified", "monitoring", "resolved"):
        assert f'{STATUS_COUNTS}{{status="{status}"}} 0.0' in text


def test_reset_on_fresh_registry_exposes_labels(metrics):
    metrics.reset_incident_status_counts_gauge()

    for status in ("investigating", "identified", "monitoring", "resolved"):
        assert _sample(metrics, STATUS_COUNTS, {"status": status}) == 0


@pytest.mark.parametrize(
    ("severity", "bucket"),
    [("low", "1.5"), ("medium", "2.5"), ("high", "3.5"), ("critical", "+Inf")],
)
def test_record_incident_severity_lands_in_own_bucket(metrics, severity, bucket):
    metrics.record_incident_severity(severity)

    bounds = ["0.5", "1.5", "2.5", "3.5", "+Inf"]
    first_hit = bounds.index(bucket)
    for index, bound in enumerate(bounds):
        expected = 1 if index >= first_hit else 0
        labels = {"severity": severity, "le": bound}
        assert _sample(metrics, f"{SEVERITY}_bucket", labels) == expected
    assert _sample(metrics, f"{SEVERITY}_sum", {"severity": severity}) == {
        "low": 1,
        "medium": 2,
        "high": 3,
        "critical": 4,
    }[severity]


def test_invalid_labels_raise_in_strict_mode(metrics):
    with pytest.raises(InvalidLabelError):
        metrics.record_processing_latency("explode", "success", 0.1)
    with pytest.raises(InvalidLabelError):
        metrics.record_processing_latency("create", "maybe", 0.1)
    with pytest.raises(InvalidLabelError):
        metrics.record_database_latency("upsert", "incidents", 0.1)
    with pytest.raises(InvalidLabelError):
        metrics.record_database_latency("insert", "", 0.1)
    with pytest.raises(InvalidLabelError):
        metrics.record_incident_severity("catastrophic")
    with pytest.raises(InvalidLabelError):
        metrics.update_incident_status_counts_gauge({"closed": 1})


def test_invalid_labels_are_logged_and_dropped(caplog):
    metrics = MetricsRegistry(default_collectors=False, strict_labels=False)

    with caplog.at_level("WARNING", logger=registry_module.__name__):
        metrics.record_processing_latency("explode", "success", 0.1)
        metrics.record_incident_severity("catastrophic")

    assert "explode" not in metrics.get_metrics()
    assert _sample(metrics, OPERATIONS, {"operation": "explode", "status": "success"}) is None
    assert len([r for r in caplog.records if "Failed to record metric" in r.getMessage()]) == 2


def test_get_metrics_exposition_headers(metrics):
    metrics.update_active_incidents_gauge(1)

    text = metrics.get_metrics()

    assert "# HELP status_service_active_incidents Number of active (non-resolved) incidents" in text
    assert "# TYPE status_service_active_incidents gauge" in text
    assert f"# TYPE {LATENCY} histogram" in text
    assert "# TYPE status_service_admin_operations_total counter" in text


def test_get_metrics_is_fresh_snapshot(metrics):
    metrics.update_active_incidents_gauge(1)
    first = metrics.get_metrics()
    metrics.update_active_incidents_gauge(9)
    second = metrics.get_metrics()

    assert "status_service_active_incidents 1.0" in first
    assert "status_service_active_incidents 9.0" in second


def test_default_collectors_included():
    metrics = MetricsRegistry(default_collectors=True)

    assert "python_info" in metrics.get_metrics()


def test_get_metrics_json(metrics):
    metrics.update_incident_status_counts_gauge(
        {"investigating": 2, "identified": 1, "monitoring": 3, "resolved": 4}
    )

    families = {family["name"]: family for family in metrics.get_metrics_json()}

    status_family = families[STATUS_COUNTS]
    assert status_family["type"] == "gauge"
    assert status_family["help"] == "Number of incidents by status"
    values = {v["labels"]["status"]: v["value"] for v in status_family["values"]}
    assert values == {"investigating": 2, "identified": 1, "monitoring": 3, "resolved": 4}


def test_custom_namespace():
    metrics = MetricsRegistry(namespace="statuspage", default_collectors=False)
    metrics.update_active_incidents_gauge(3)

    assert "statuspage_active_incidents 3.0" in metrics.get_metrics()


def test_content_type(metrics):
    assert metrics.content_type == CONTENT_TYPE_LATEST
    assert metrics.content_type.startswith("text/plain")


def test_process_registry_singleton(clean_singletons, monkeypatch):
    monkeypatch.setenv("METRICS_DEFAULT_COLLECTORS", "false")

    first = registry_module.get_metrics_registry()
    assert registry_module.get_metrics_registry() is first

    registry_module.reset_metrics_registry()
    assert registry_module.get_metrics_registry() is not first


def test_module_level_helpers_use_process_registry(clean_singletons, monkeypatch):
    monkeypatch.setenv("METRICS_DEFAULT_COLLECTORS", "false")

    registry_module.record_processing_latency("get", "success", 0.01)
    registry_module.record_database_latency("select", "incidents", 0.01)
    registry_module.update_active_incidents_gauge(4)
    registry_module.update_incident_status_counts_gauge({"monitoring": 1})
    registry_module.reset_incident_status_counts_gauge()
    registry_module.record_incident_severity("medium")

    metrics = registry_module.get_metrics_registry()
    assert _sample(metrics, OPERATIONS, {"operation": "get", "status": "success"}) == 1
    assert _sample(metrics, "status_service_active_incidents") == 4
    assert _sample(metrics, STATUS_COUNTS, {"status": "monitoring"}) == 0
    assert "status_service_incident_severity" in registry_module.get_metrics()
    assert registry_module.get_metrics_json()


def test_exposition_has_no_created_series(metrics):
    metrics.record_processing_latency("create", "success", 0.05)
    metrics.record_incident_severity("low")

    text = metrics.get_metrics()

    assert "_created" not in text
    assert _sample(metrics, OPERATIONS, {"operation": "create", "status": "success"}) == 1


def test_reset_status_counts_failure_is_logged(caplog, monkeypatch):
    metrics = MetricsRegistry(default_collectors=False, strict_labels=False)

    def broken_labels(**_labels):
        raise RuntimeError("registry unavailable")

    monkeypatch.setattr(metrics.incident_status_counts, "labels", broken_labels)

    with caplog.at_level("WARNING", logger=registry_module.__name__):
        metrics.reset_incident_status_counts_gauge()

    assert any(
        "reset_incident_status_counts_gauge" in r.getMessage() for r in caplog.records
    )


def test_reset_status_counts_failure_raises_when_strict(metrics, monkeypatch):
    def broken_labels(**_labels):
        raise RuntimeError("registry unavailable")

    monkeypatch.setattr(metrics.incident_status_counts, "labels", broken_labels)

    with pytest.raises(RuntimeError):
        metrics.reset_incident_status_counts_gauge()
