"""Application context assembly."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from status_analytics.analytics.service import AnalyticsService, get_analytics_service
from status_analytics.config import Settings, load_settings
from status_analytics.metrics.registry import MetricsRegistry, get_metrics_registry


@dataclass
class AppContext:
    """Application-wide dependency container.

    Holds the process-wide analytics service and metrics registry.
    Initialized once at startup and cached for the lifetime of the process.
    """

    settings: Settings
    analytics: AnalyticsService
    metrics: MetricsRegistry


@lru_cache(maxsize=1)
def get_app_context() -> AppContext:
    """Get or create the application context."""
    return AppContext(
        settings=load_settings(),
        analytics=get_analytics_service(),
        metrics=get_metrics_registry(),
    )
