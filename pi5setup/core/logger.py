# pi5setup/core/logger.py
import logging
import sys
from collections.abc import Mapping
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from rich.logging import RichHandler

# Default log format
DEFAULT_LOG_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)-26s: %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_LOG_DIRECTORY = "~/.local/state/pi5setup"
LOG_FILE_NAME = "pi5setup.log"


class LoggerProxy:
    """
    Lazy logger accessor to avoid boilerplate logger setup in each module.
    Usage: log = LoggerProxy(__name__)
    """

    def __init__(self, name: str):
        self._name = name
        self._logger: logging.Logger | None = None

    def _get_logger(self) -> logging.Logger:
        if self._logger is None:
            self._logger = logging.getLogger(self._name)
        return self._logger

    def __getattr__(self, item: str) -> Any:
        return getattr(self._get_logger(), item)


def log_directory(config: Mapping[str, Any]) -> Path:
    """Resolve the configured log directory (also used for diagnostics)."""
    behavior = config.get("script_behavior", {})
    return Path(behavior.get("log_file_directory", DEFAULT_LOG_DIRECTORY)).expanduser()


def setup_logging(config: dict[str, Any], verbose: bool = False) -> Path | None:
    """
    Sets up logging with rich console output and a rotating log file.

    Status lines are printed by the report printer, so the console handler only
    surfaces warnings and errors unless ``verbose`` is set. The file handler
    records everything at the configured level.

    Returns the log file path, or None when file logging is disabled or failed.
    """
    behavior = config.get("script_behavior", {})

    level_str = "DEBUG" if verbose else behavior.get("log_level_default", "INFO").upper()
    level = getattr(logging, level_str, logging.INFO)

    log_format = behavior.get("log_format", DEFAULT_LOG_FORMAT)
    date_format = behavior.get("date_format", DEFAULT_DATE_FORMAT)

    console = RichHandler(rich_tracebacks=True, markup=False, show_time=False, show_path=False)
    console.setLevel(logging.DEBUG if verbose else logging.WARNING)
    handlers: list[logging.Handler] = [console]

    log_file_path: Path | None = None
    if behavior.get("log_to_file", True):
        log_dir = log_directory(config)
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            log_file_path = log_dir / LOG_FILE_NAME
            file_handler = RotatingFileHandler(
                log_file_path, maxBytes=5 * 1024 * 1024, backupCount=5
            )
            file_handler.setFormatter(logging.Formatter(log_format, date_format))
            handlers.append(file_handler)
        except OSError as e:
            print(f"ERROR: Could not set up file logging at {log_dir}: {e}", file=sys.stderr)
            log_file_path = None

    root_logger = logging.getLogger()
    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    logging.basicConfig(level=level, format=log_format, datefmt=date_format, handlers=handlers)

    LoggerProxy(__name__).debug(
        "Logging initialized. Level: %s. File: %s", level_str, log_file_path or "disabled"
    )
    return log_file_path
