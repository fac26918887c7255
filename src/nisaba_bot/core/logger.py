"""Process-wide logging for the bot.

Every module logs through ``get_logger`` under the ``nisaba_bot`` namespace.
``setup_logging`` is called once by the bot (and again by tests) and replaces
whatever handlers the root logger had: a Rich console handler always, plus a
size-rotated file when ``logging.log_file`` is set.
"""

from __future__ import annotations

import logging
from contextlib import suppress
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from .config import LoggingConfig

LOGGER_NAMESPACE = "nisaba_bot"

_loggers: dict[str, logging.Logger] = {}
_configured = False
_current_level: int = logging.INFO

console = Console()


class CloseOnEmitFileHandler(RotatingFileHandler):
    """Rotating log file opened only for the duration of each record.

    A bot pointed at ``log_file: config/nisaba.log`` shares its config
    directory with the transcript and its numbered archives. Holding no open
    handle between records lets ``transcript save``/``load`` rename files in
    that directory while the bot runs, and lets temporary directories be
    removed on platforms that refuse to delete open files.
    """

    def emit(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        try:
            super().emit(record)
        finally:
            # close() flushes; RotatingFileHandler reopens lazily (delay=True)
            self.close()


def _qualified(name: str) -> str:
    if name == LOGGER_NAMESPACE or name.startswith(f"{LOGGER_NAMESPACE}."):
        return name
    return f"{LOGGER_NAMESPACE}.{name}"


def _reset_root(root: logging.Logger) -> None:
    """Detach and close the root handlers left by an earlier setup."""
    for handler in list(root.handlers):
        root.removeHandler(handler)
        with suppress(Exception):
            handler.close()


def _console_handler(level: int, debug: bool) -> logging.Handler:
    handler = RichHandler(
        console=console,
        show_time=True,
        show_path=debug,
        markup=False,
        rich_tracebacks=True,
    )
    handler.setLevel(level)
    return handler


def _file_handler(log_file: str, config: LoggingConfig, level: int) -> logging.Handler:
    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = CloseOnEmitFileHandler(
        path,
        maxBytes=config.max_bytes,
        backupCount=config.backup_count,
        encoding="utf-8",
        delay=True,
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(config.format))
    return handler


def setup_logging(config: LoggingConfig | None = None, debug: bool = False) -> None:
    """Install the bot's handlers on the root logger.

    Args:
        config: Logging settings; defaults to ``LoggingConfig()``
        debug: Log at DEBUG whatever ``config.level`` says, with source paths
    """
    global _configured, _current_level

    config = config or LoggingConfig()
    level_name = "DEBUG" if debug else config.level.upper()
    level = logging.getLevelNamesMapping()[level_name]

    root = logging.getLogger()
    _reset_root(root)
    root.setLevel(level)
    root.addHandler(_console_handler(level, debug))
    if config.log_file:
        root.addHandler(_file_handler(config.log_file, config, level))

    # Loggers handed out before setup carry the old level.
    logging.getLogger(LOGGER_NAMESPACE).setLevel(level)
    for existing in _loggers.values():
        existing.setLevel(level)
    _current_level = level
    _configured = True

    logger = get_logger("setup")
    logger.info("Logging configured: level=%s", level_name)
    if config.log_file:
        logger.info("Log file: %s", config.log_file)


def get_logger(name: str) -> logging.Logger:
    """Logger for ``name`` inside the ``nisaba_bot`` namespace.

    Module names that already start with the namespace are used as-is, so
    ``get_logger(__name__)`` and ``get_logger("chat.session")`` both work.
    """
    logger = _loggers.get(name)
    if logger is None:
        logger = logging.getLogger(_qualified(name))
        logger.setLevel(_current_level)
        _loggers[name] = logger
    return logger


def log_exception(logger: logging.Logger, exc: Exception, context: str = "") -> None:
    """Log ``exc`` at ERROR with its traceback, prefixed by ``context``."""
    logger.exception("%s: %s", context or "Exception occurred", exc)
