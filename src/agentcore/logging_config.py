# src/agentcore/logging_config.py
"""
Logging setup for hosts embedding the autonomous core.

Every agentcore module logs through ``logging.getLogger(__name__)`` and
never installs handlers itself. A host that wants agentcore's default
arrangement calls :func:`configure_logging` once at startup:

- a stderr handler gated by :class:`DisplayFilter`, so that in quiet mode
  only records flagged with ``extra={"display": True}`` reach the console
  (agent start/stop, goals completing or failing);
- an optional file handler, either one file per run or a single
  size-rotated file;
- per-component level overrides (``agentcore.autonomous.heartbeat`` at
  WARNING silences per-tick chatter, for example).

Settings come from an explicit dict or from the ``[logging]`` table of a
TOML file, merged over :data:`DEFAULT_LOGGING_CONFIG`.

Usage:
    from agentcore.logging_config import configure_logging, log_display

    configure_logging(app_name="assistant", config={"file_enabled": False})

    logger = logging.getLogger("assistant.startup")
    log_display(logger, logging.INFO, "Agent ready for %d users", count)
"""

import logging
import os
import sys
import tomllib
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

from .exceptions import ConfigError

DEFAULT_LOGGING_CONFIG: dict[str, Any] = {
    "console_enabled": False,
    "console_level": "WARNING",
    "console_format": "%(levelname)s - %(message)s",
    "file_enabled": False,
    "file_level": "DEBUG",
    "file_directory": "~/.local/share/agentcore/logs",
    "file_mode": "per_run",
    "file_name_pattern": "{app}_{timestamp:%Y%m%d_%H%M%S}.log",
    "file_single_name": "{app}.log",
    "file_format": "%(asctime)s [%(levelname)-8s] %(name)-40s - %(message)s",
    "rotation_max_bytes": 5 * 1024 * 1024,
    "rotation_backup_count": 3,
    "display_min_level": "INFO",
    "components": {
        "agentcore": "INFO",
        "asyncio": "WARNING",
        "aiosqlite": "WARNING",
    },
}


def _resolve_level(value: str | int, default: int) -> int:
    if isinstance(value, int):
        return value
    level = logging.getLevelName(str(value).upper())
    return level if isinstance(level, int) else default


# ---------------------------------------------------------------------------
# DisplayFilter
# ---------------------------------------------------------------------------


class DisplayFilter(logging.Filter):
    """Decides which records the console handler lets through.

    With the console globally enabled every record passes and the handler
    level does the filtering. Otherwise only records carrying
    ``display=True`` at or above ``display_min_level`` pass.
    """

    def __init__(
        self,
        console_globally_enabled: bool = False,
        display_min_level: int = logging.INFO,
    ) -> None:
        super().__init__()
        self.console_globally_enabled = console_globally_enabled
        self.display_min_level = display_min_level

    def filter(self, record: logging.LogRecord) -> bool:
        if self.console_globally_enabled:
            return True
        if getattr(record, "display", False):
            return record.levelno >= self.display_min_level
        return False


# ---------------------------------------------------------------------------
# Manager
# ---------------------------------------------------------------------------


class UnifiedLoggingManager:
    """
    Singleton owning the handlers installed on the root logger.

    Configuration is applied once; later calls are no-ops unless
    ``force_reconfigure`` is passed.
    """

    _instance: Optional["UnifiedLoggingManager"] = None
    _configured: bool = False
    _log_file_path: Path | None = None

    def __new__(cls) -> "UnifiedLoggingManager":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._console_handler = None
            cls._instance._file_handler = None
            cls._instance._display_filter = None
        return cls._instance

    @classmethod
    def get_instance(cls) -> "UnifiedLoggingManager":
        return cls()

    @classmethod
    def is_configured(cls) -> bool:
        return cls._configured

    @classmethod
    def get_log_file_path(cls) -> Path | None:
        return cls._log_file_path

    @classmethod
    def reset(cls) -> None:
        """Remove installed handlers and forget the configuration."""
        instance = cls._instance
        if instance is not None:
            root_logger = logging.getLogger()
            for handler in (instance._console_handler, instance._file_handler):
                if handler is not None:
                    root_logger.removeHandler(handler)
                    handler.close()
            instance._console_handler = None
            instance._file_handler = None
            instance._display_filter = None
        cls._configured = False
        cls._log_file_path = None

    def configure(
        self,
        app_name: str = "agentcore",
        config: dict[str, Any] | None = None,
        config_file_path: str | Path | None = None,
        force_reconfigure: bool = False,
    ) -> Path | None:
        """
        Install console and file handlers on the root logger.

        Args:
            app_name: Used in log file names.
            config: Logging settings; takes precedence over ``config_file_path``.
            config_file_path: TOML file whose ``[logging]`` table is used.
            force_reconfigure: Replace a previous configuration.

        Returns:
            The log file path, or None when file logging is off.
        """
        if self._configured and not force_reconfigure:
            return self._log_file_path

        log_config = self._load_config(config, config_file_path)
        UnifiedLoggingManager.reset()

        root_logger = logging.getLogger()
        root_logger.setLevel(logging.DEBUG)

        console_enabled = bool(log_config.get("console_enabled", False))
        self._display_filter = DisplayFilter(
            console_globally_enabled=console_enabled,
            display_min_level=_resolve_level(log_config.get("display_min_level", "INFO"), logging.INFO),
        )
        self._console_handler = logging.StreamHandler(sys.stderr)
        self._console_handler.setFormatter(logging.Formatter(log_config["console_format"]))
        if console_enabled:
            self._console_handler.setLevel(_resolve_level(log_config["console_level"], logging.WARNING))
        else:
            # Filter is the only gate in quiet mode.
            self._console_handler.setLevel(logging.DEBUG)
        self._console_handler.addFilter(self._display_filter)
        root_logger.addHandler(self._console_handler)

        log_file_path = None
        if log_config.get("file_enabled", False):
            self._file_handler, log_file_path = self._create_file_handler(log_config, app_name)
            if self._file_handler is not None:
                root_logger.addHandler(self._file_handler)

        for component_name, level_str in log_config.get("components", {}).items():
            self.set_component_level(component_name, level_str)

        UnifiedLoggingManager._configured = True
        UnifiedLoggingManager._log_file_path = log_file_path
        if log_file_path:
            logging.getLogger(__name__).debug(f"Logging configured. Log file: {log_file_path}")
        return log_file_path

    def _load_config(
        self, config: dict[str, Any] | None, config_file_path: str | Path | None
    ) -> dict[str, Any]:
        if config is not None:
            return {**DEFAULT_LOGGING_CONFIG, **config}

        if config_file_path is not None:
            path = Path(config_file_path).expanduser()
            try:
                with open(path, "rb") as f:
                    raw = tomllib.load(f)
            except FileNotFoundError as e:
                raise ConfigError(f"Logging config file not found: {path}") from e
            except tomllib.TOMLDecodeError as e:
                raise ConfigError(f"Invalid TOML in {path}: {e}") from e
            return {**DEFAULT_LOGGING_CONFIG, **raw.get("logging", {})}

        return dict(DEFAULT_LOGGING_CONFIG)

    def _create_file_handler(
        self, config: dict[str, Any], app_name: str
    ) -> tuple[logging.Handler | None, Path | None]:
        """Create the file handler for ``per_run`` or ``single`` mode.

        Failure to create the directory or file disables file logging
        with a warning on stderr rather than aborting startup.
        """
        log_dir = Path(os.path.expanduser(config["file_directory"]))
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            sys.stderr.write(f"Warning: Cannot create log directory {log_dir}: {e}\n")
            return None, None

        if config.get("file_mode", "per_run") == "single":
            log_file_path = log_dir / config["file_single_name"].format(app=app_name)
            try:
                handler: logging.Handler = RotatingFileHandler(
                    log_file_path,
                    maxBytes=config["rotation_max_bytes"],
                    backupCount=config["rotation_backup_count"],
                    encoding="utf-8",
                )
            except OSError as e:
                sys.stderr.write(f"Warning: Cannot create log file {log_file_path}: {e}\n")
                return None, None
        else:
            filename = config["file_name_pattern"].format(app=app_name, timestamp=datetime.now())
            log_file_path = log_dir / filename
            try:
                handler = logging.FileHandler(log_file_path, encoding="utf-8")
            except OSError as e:
                sys.stderr.write(f"Warning: Cannot create log file {log_file_path}: {e}\n")
                return None, None

        handler.setLevel(_resolve_level(config.get("file_level", "DEBUG"), logging.DEBUG))
        handler.setFormatter(logging.Formatter(config["file_format"]))
        return handler, log_file_path

    def set_component_level(self, component: str, level: str | int) -> None:
        """Change a specific logger's level at runtime."""
        logging.getLogger(component).setLevel(_resolve_level(level, logging.NOTSET))


# ---------------------------------------------------------------------------
# Public module-level functions
# ---------------------------------------------------------------------------


def configure_logging(
    app_name: str = "agentcore",
    config: dict[str, Any] | None = None,
    config_file_path: str | Path | None = None,
    force_reconfigure: bool = False,
) -> Path | None:
    """Configure agentcore logging. See :meth:`UnifiedLoggingManager.configure`."""
    return UnifiedLoggingManager.get_instance().configure(
        app_name=app_name,
        config=config,
        config_file_path=config_file_path,
        force_reconfigure=force_reconfigure,
    )


def log_display(
    logger: logging.Logger,
    level: int,
    msg: str,
    *args: Any,
    **kwargs: Any,
) -> None:
    """Log a message that reaches the console even in quiet mode.

    The caller's ``extra`` dict is merged, not replaced.
    """
    extra = dict(kwargs.pop("extra", None) or {})
    extra["display"] = True
    kwargs["extra"] = extra
    logger.log(level, msg, *args, **kwargs)


def set_component_level(component: str, level: str | int) -> None:
    """Change a specific component's log level at runtime."""
    UnifiedLoggingManager.get_instance().set_component_level(component, level)
