from unittest.mock import MagicMock, patch

from status_analytics.app import AppContext, get_app_context
from status_analytics.config import Settings


@patch("status_analytics.app.load_settings")
@patch("status_analytics.app.get_analytics_service")
@patch("status_analytics.app.get_metrics_registry")
def test_app_context_initialization(
    mock_metrics,
    mock_analytics,
    mock_load_settings,
    clean_singletons,
):
    settings = MagicMock(spec=Settings)
    mock_load_settings.return_value = settings

    ctx = get_app_context()

    assert isinstance(ctx, AppContext)
    assert ctx.settings is settings
    assert ctx.analytics is mock_analytics.return_value
    assert ctx.metrics is mock_metrics.return_value


@patch("status_analytics.app.load_settings")
@patch("status_analytics.app.get_analytics_service")
@patch("status_analytics.app.get_metrics_registry")
def test_app_context_is_cached(
    mock_metrics,
    mock_analytics,
    mock_load_settings,
    clean_singletons,
):
    first = get_app_context()
    second = get_app_context()

    assert first is second
    mock_analytics.assert_called_once()
    mock_metrics.assert_called_once()


def test_app_context_shares_process_singletons(clean_singletons, monkeypatch):
    monkeypatch.setenv("ANALYTICS_RETENTION_ENABLED", "false")
    monkeypatch.setenv("METRICS_DEFAULT_COLLECTORS", "false")
    from status_analytics.analytics.service import get_analytics_service
    from status_analytics.metrics.registry import get_metrics_registry

    ctx = get_app_context()

    assert ctx.analytics is get_analytics_service()
    assert ctx.metrics is get_metrics_registry()
