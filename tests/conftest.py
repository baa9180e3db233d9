from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from status_analytics.analytics import service as analytics_service_module
from status_analytics.analytics.service import AnalyticsService
from status_analytics.app import get_app_context
from status_analytics.config import _load_settings_cached
from status_analytics.metrics import registry as metrics_registry_module
from status_analytics.metrics.registry import MetricsRegistry


def pytest_sessionstart(session: pytest.Session) -> None:
    # Keep background retention threads out of unit test runs.
    os.environ.setdefault("ANALYTICS_RETENTION_ENABLED", "false")


class FakeClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def mock_logger() -> MagicMock:
    return MagicMock()


@pytest.fixture
def analytics(clock: FakeClock, mock_logger: MagicMock):
    service = AnalyticsService(logger=mock_logger, clock=clock)
    yield service
    service.close()


@pytest.fixture
def metrics() -> MetricsRegistry:
    return MetricsRegistry(default_collectors=False, strict_labels=True)


@pytest.fixture
def clean_singletons():
    def _clear() -> None:
        analytics_service_module.close_analytics_service()
        metrics_registry_module.reset_metrics_registry()
        get_app_context.cache_clear()
        _load_settings_cached.cache_clear()

    _clear()
    yield
    _clear()
