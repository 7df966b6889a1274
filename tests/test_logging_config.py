# tests/test_logging_config.py
"""
Tests for the agentcore.logging_config module.

Tests the DisplayFilter gate, log_display, the UnifiedLoggingManager
singleton with its console/file handlers, and TOML loading.
"""

import logging

import pytest

from agentcore.exceptions import ConfigError
from agentcore.logging_config import (
    DEFAULT_LOGGING_CONFIG,
    DisplayFilter,
    UnifiedLoggingManager,
    configure_logging,
    log_display,
    set_component_level,
)


@pytest.fixture
def reset_logging_manager():
    """Reset the logging manager singleton between tests."""
    UnifiedLoggingManager.reset()
    yield
    UnifiedLoggingManager.reset()


def make_record(level: int, display: bool | None = None) -> logging.LogRecord:
    record = logging.LogRecord("agentcore.test", level, __file__, 1, "message", None, None)
    if display is not None:
        record.display = display
    return record


class TestDefaultLoggingConfig:
    """Tests for default logging configuration."""

    def test_quiet_by_default(self):
        assert DEFAULT_LOGGING_CONFIG["console_enabled"] is False
        assert DEFAULT_LOGGING_CONFIG["file_enabled"] is False

    def test_component_defaults(self):
        assert DEFAULT_LOGGING_CONFIG["components"]["agentcore"] == "INFO"
        assert DEFAULT_LOGGING_CONFIG["components"]["aiosqlite"] == "WARNING"


class TestDisplayFilter:
    """Tests for the console gate."""

    def test_console_enabled_passes_everything(self):
        display_filter = DisplayFilter(console_globally_enabled=True)
        assert display_filter.filter(make_record(logging.DEBUG))

    def test_quiet_mode_drops_unflagged_records(self):
        display_filter = DisplayFilter()
        assert not display_filter.filter(make_record(logging.ERROR))
        assert not display_filter.filter(make_record(logging.ERROR, display=False))

    def test_quiet_mode_respects_display_min_level(self):
        display_filter = DisplayFilter(display_min_level=logging.WARNING)
        assert display_filter.filter(make_record(logging.WARNING, display=True))
        assert not display_filter.filter(make_record(logging.INFO, display=True))


class TestLogDisplay:
    """Tests for log_display."""

    def test_sets_display_flag(self, caplog):
        logger = logging.getLogger("agentcore.test.display")
        with caplog.at_level(logging.INFO, logger="agentcore.test.display"):
            log_display(logger, logging.INFO, "Agent ready for %d users", 3)

        [record] = caplog.records
        assert record.getMessage() == "Agent ready for 3 users"
        assert record.display is True

    def test_merges_caller_extra(self, caplog):
        logger = logging.getLogger("agentcore.test.display")
        with caplog.at_level(logging.INFO, logger="agentcore.test.display"):
            log_display(logger, logging.INFO, "Goal done", extra={"goal_id": "goal_1"})

        [record] = caplog.records
        assert record.goal_id == "goal_1"
        assert record.display is True


class TestUnifiedLoggingManager:
    """Tests for the singleton and its handlers."""

    def test_singleton(self, reset_logging_manager):
        assert UnifiedLoggingManager() is UnifiedLoggingManager.get_instance()

    def test_console_only(self, reset_logging_manager):
        path = configure_logging(config={"file_enabled": False})

        assert path is None
        assert UnifiedLoggingManager.is_configured()
        manager = UnifiedLoggingManager.get_instance()
        assert manager._console_handler in logging.getLogger().handlers
        assert manager._file_handler is None

    def test_second_call_is_a_no_op(self, reset_logging_manager, tmp_path):
        configure_logging(config={"file_enabled": False})
        assert configure_logging(config={"file_enabled": True, "file_directory": str(tmp_path)}) is None
        assert list(tmp_path.iterdir()) == []

    def test_per_run_file(self, reset_logging_manager, tmp_path):
        path = configure_logging(
            app_name="assistant",
            config={"file_enabled": True, "file_directory": str(tmp_path)},
        )

        assert path.parent == tmp_path
        assert path.name.startswith("assistant_")
        assert UnifiedLoggingManager.get_log_file_path() == path

        logging.getLogger("agentcore.test.file").info("written to file")
        UnifiedLoggingManager.get_instance()._file_handler.flush()
        assert "written to file" in path.read_text(encoding="utf-8")

    def test_single_rotating_file(self, reset_logging_manager, tmp_path):
        path = configure_logging(
            app_name="assistant",
            config={"file_enabled": True, "file_mode": "single", "file_directory": str(tmp_path)},
        )
        assert path == tmp_path / "assistant.log"

    def test_force_reconfigure_replaces_handlers(self, reset_logging_manager, tmp_path):
        configure_logging(config={"file_enabled": False})
        first = UnifiedLoggingManager.get_instance()._console_handler

        configure_logging(config={"file_enabled": False}, force_reconfigure=True)

        root_handlers = logging.getLogger().handlers
        assert first not in root_handlers
        assert UnifiedLoggingManager.get_instance()._console_handler in root_handlers

    def test_reset_removes_handlers(self, reset_logging_manager):
        configure_logging(config={"file_enabled": False})
        handler = UnifiedLoggingManager.get_instance()._console_handler

        UnifiedLoggingManager.reset()

        assert handler not in logging.getLogger().handlers
        assert not UnifiedLoggingManager.is_configured()

    def test_component_levels(self, reset_logging_manager):
        configure_logging(config={"components": {"agentcore.autonomous.heartbeat": "WARNING"}})
        assert logging.getLogger("agentcore.autonomous.heartbeat").level == logging.WARNING

        set_component_level("agentcore.autonomous.heartbeat", "DEBUG")
        assert logging.getLogger("agentcore.autonomous.heartbeat").level == logging.DEBUG


class TestTomlLoading:
    """Tests for the [logging] table of a TOML file."""

    def test_reads_logging_table(self, reset_logging_manager, tmp_path):
        config_file = tmp_path / "agent.toml"
        config_file.write_text(
            f'[logging]\nfile_enabled = true\nfile_mode = "single"\nfile_directory = "{tmp_path.as_posix()}"\n',
            encoding="utf-8",
        )

        path = configure_logging(app_name="fromtoml", config_file_path=config_file)

        assert path == tmp_path / "fromtoml.log"

    def test_missing_file(self, reset_logging_manager, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            configure_logging(config_file_path=tmp_path / "missing.toml")

    def test_invalid_toml(self, reset_logging_manager, tmp_path):
        config_file = tmp_path / "broken.toml"
        config_file.write_text("[logging\nfile_enabled = ", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid TOML"):
            configure_logging(config_file_path=config_file)
