"""Logging for projectrag: Rich output on stderr plus an optional rotating log file."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

ROOT_LOGGER_NAME = "projectrag"
LOG_FILE_NAME = "projectrag.log"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"

PROJECTRAG_THEME = Theme(
    {
        "logging.level.info": "cyan",
        "logging.level.warning": "yellow",
        "logging.level.error": "red bold",
        "logging.level.critical": "red bold reverse",
    }
)


def _console_handler(console: Console, level: int) -> logging.Handler:
    # stdout is left to command output (tables, JSON)
    handler = RichHandler(
        console=console,
        rich_tracebacks=True,
        show_time=True,
        show_path=False,
        markup=False,
    )
    handler.setLevel(level)
    return handler


def _file_handler(log_dir: Path, level: int, max_bytes: int, backup_count: int) -> logging.Handler:
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_dir / LOG_FILE_NAME,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(fmt=FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    handler.setLevel(level)
    return handler


class ProjectRAGLogger:
    """Process-wide owner of the ``projectrag`` logger and its handlers."""

    _instance: "ProjectRAGLogger | None" = None

    def __new__(cls):
        if cls._instance is None:
            instance = super().__new__(cls)
            instance.console = Console(theme=PROJECTRAG_THEME, stderr=True)
            instance.logger = logging.getLogger(ROOT_LOGGER_NAME)
            instance.configured = False
            cls._instance = instance
        return cls._instance

    def setup(
        self,
        level: str = "INFO",
        log_dir: Path | None = None,
        max_bytes: int = 10 * 1024 * 1024,
        backup_count: int = 5,
        console_enabled: bool = True,
        file_enabled: bool = False,
    ):
        """
        Replace the handlers of the ``projectrag`` logger.

        Records do not propagate to the root logger, so an application
        embedding the index keeps its own logging untouched. With every output
        disabled a NullHandler is installed.
        """
        log_level = logging.getLevelName(level.upper())
        if not isinstance(log_level, int):
            log_level = logging.INFO

        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()

        self.logger.setLevel(log_level)
        self.logger.propagate = False

        if console_enabled:
            self.logger.addHandler(_console_handler(self.console, log_level))
        if file_enabled:
            directory = Path(log_dir) if log_dir else Path.home() / ".projectrag" / "logs"
            self.logger.addHandler(_file_handler(directory, log_level, max_bytes, backup_count))
        if not self.logger.handlers:
            self.logger.addHandler(logging.NullHandler())

        self.configured = True

    def get_logger(self, name: str | None = None) -> logging.Logger:
        """
        Child logger for a module.

        ``get_logger("projectrag.index.store")`` and ``get_logger("index.store")``
        resolve to the same logger.
        """
        if not name or name == ROOT_LOGGER_NAME:
            return self.logger
        prefix = ROOT_LOGGER_NAME + "."
        if name.startswith(prefix):
            name = name[len(prefix) :]
        return self.logger.getChild(name)


def get_logger(name: str | None = None) -> logging.Logger:
    """Get a ``projectrag`` logger, configuring defaults on first use."""
    owner = ProjectRAGLogger()
    if not owner.configured:
        owner.setup()
    return owner.get_logger(name)


def setup_logging(
    level: str = "INFO",
    log_dir: Path | None = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    console_enabled: bool = True,
    file_enabled: bool = False,
):
    """Configure projectrag logging (see ``ProjectRAGLogger.setup``)."""
    ProjectRAGLogger().setup(level, log_dir, max_bytes, backup_count, console_enabled, file_enabled)
