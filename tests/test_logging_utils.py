from __future__ import annotations

import logging
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

from status_analytics import logging_utils


def _settings(log_file: str | None, level: str = "INFO") -> SimpleNamespace:
    return SimpleNamespace(
        logging=SimpleNamespace(level=level, file=log_file),
    )


@patch("status_analytics.logging_utils.load_settings")
@patch("status_analytics.logging_utils.logging.basicConfig")
def test_configure_logging_stream_only(
    mock_basic_config: MagicMock,
    mock_load_settings: MagicMock,
) -> None:
    mock_load_settings.return_value = _settings(None, level="debug")

    logging_utils.configure_logging()

    kwargs = mock_basic_config.call_args.kwargs
    assert kwargs["force"] is True
    assert kwargs["level"] == logging.DEBUG
    assert len(kwargs["handlers"]) == 1


@patch("status_analytics.logging_utils.load_settings")
@patch("status_analytics.logging_utils.logging.basicConfig")
def test_configure_logging_unknown_level_falls_back_to_info(
    mock_basic_config: MagicMock,
    mock_load_settings: MagicMock,
) -> None:
    mock_load_settings.return_value = _settings(None, level="chatty")

    logging_utils.configure_logging()

    assert mock_basic_config.call_args.kwargs["level"] == logging.INFO


@patch("status_analytics.logging_utils.load_settings")
@patch("status_analytics.logging_utils.logging.basicConfig")
def test_configure_logging_with_file(
    mock_basic_config: MagicMock,
    mock_load_settings: MagicMock,
    tmp_path,
) -> None:
    mock_load_settings.return_value = _settings(str(tmp_path / "logs" / "status.log"))

    logging_utils.configure_logging()

    handlers = mock_basic_config.call_args.kwargs["handlers"]
    assert len(handlers) == 2
    assert isinstance(handlers[1], logging.FileHandler)
    handlers[1].close()


@patch("status_analytics.logging_utils.load_settings")
@patch("status_analytics.logging_utils.logging.basicConfig")
@patch(
    "status_analytics.logging_utils.logging.FileHandler",
    side_effect=OSError("permission denied"),
)
@patch("status_analytics.logging_utils._logger")
def test_configure_logging_file_handler_error(
    mock_logger: MagicMock,
    _mock_file_handler: MagicMock,
    mock_basic_config: MagicMock,
    mock_load_settings: MagicMock,
    tmp_path,
) -> None:
    mock_load_settings.return_value = _settings(str(tmp_path / "app.log"))

    logging_utils.configure_logging()

    mock_logger.warning.assert_called_once()
    assert len(mock_basic_config.call_args.kwargs["handlers"]) == 1


def test_get_logger_auto_configures(monkeypatch) -> None:
    monkeypatch.setattr(logging_utils, "_logging_configured", False)

    calls = {"count": 0}

    def fake_configure() -> None:
        calls["count"] += 1
        monkeypatch.setattr(logging_utils, "_logging_configured", True)

    monkeypatch.setattr(logging_utils, "configure_logging", fake_configure)

    logger = logging_utils.get_logger("status.test")
    logging_utils.get_logger("status.test")

    assert logger.name == "status.test"
    assert calls["count"] == 1


@patch("status_analytics.logging_utils.load_settings")
@patch("status_analytics.logging_utils.logging.basicConfig")
def test_configure_logging_uses_given_settings(
    mock_basic_config: MagicMock,
    mock_load_settings: MagicMock,
) -> None:
    logging_utils.configure_logging(_settings(None, level="WARNING"))

    mock_load_settings.assert_not_called()
    assert mock_basic_config.call_args.kwargs["level"] == logging.WARNING


@patch("status_analytics.logging_utils.logging.basicConfig")
def test_configure_logging_quiets_access_log(mock_basic_config: MagicMock) -> None:
    access = logging.getLogger("uvicorn.access")
    previous = access.level
    try:
        logging_utils.configure_logging(_settings(None, level="DEBUG"))
        assert access.level == logging.WARNING

        logging_utils.configure_logging(_settings(None, level="ERROR"))
        assert access.level == logging.ERROR
    finally:
        access.setLevel(previous)


@patch("status_analytics.logging_utils.logging.basicConfig")
def test_handlers_use_service_format(mock_basic_config: MagicMock) -> None:
    logging_utils.configure_logging(_settings(None))

    handler = mock_basic_config.call_args.kwargs["handlers"][0]
    assert handler.formatter._fmt == logging_utils.LOG_FORMAT
