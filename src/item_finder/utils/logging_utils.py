"""
Logging utilities built on the standard library logging package.

Provides a callback handler so a presentation layer can show finder log
messages (dropped frames, perception failures) without redirecting stdout.
"""

import logging
import sys
from pathlib import Path
from typing import Callable, Optional, Union

PACKAGE_LOGGER_NAME = "item_finder"


class CallbackLogHandler(logging.Handler):
    """Logging handler that forwards formatted messages to a callback."""

    def __init__(
        self,
        callback: Callable[..., None],
        level: int = logging.NOTSET,
        *,
        pass_record: bool = False,
    ):
        super().__init__(level)
        self.callback = callback
        self.pass_record = pass_record

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            if self.pass_record:
                self.callback(msg, record)
            else:
                self.callback(msg)
        except Exception:
            self.handleError(record)


def configure_logging(
    level: Union[int, str] = logging.INFO,
    callback: Optional[Callable[[str], None]] = None,
    log_file: Optional[Path] = None,
    include_console: bool = True,
) -> logging.Logger:
    """
    Configure the package logger with optional callback and file handlers.

    Calling this more than once does not stack duplicate handlers.

    Args:
        level: Minimum log level to emit (int or name such as "DEBUG").
        callback: Optional callable to receive formatted log lines immediately.
        log_file: Optional path to append log output.
        include_console: Whether to emit to stderr as well.

    Returns:
        logging.Logger: The configured package logger.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {level}")

    logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    logger.setLevel(level)

    formatter = logging.Formatter("[%(levelname)s:%(name)s:%(lineno)d] %(message)s")

    if include_console and not any(
        type(h) is logging.StreamHandler and getattr(h, "stream", None) is sys.stderr
        for h in logger.handlers
    ):
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if callback and not any(
        isinstance(h, CallbackLogHandler) and h.callback == callback for h in logger.handlers
    ):
        callback_handler = CallbackLogHandler(callback)
        callback_handler.setLevel(level)
        callback_handler.setFormatter(formatter)
        logger.addHandler(callback_handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        if not any(
            isinstance(h, logging.FileHandler) and Path(h.baseFilename) == log_file.resolve()
            for h in logger.handlers
        ):
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_handler.setLevel(level)
            file_handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s [%(levelname)s:%(name)s:%(lineno)d] %(message)s",
                    datefmt="%Y-%m-%d %H:%M:%S",
                )
            )
            logger.addHandler(file_handler)

    return logger


def get_structured_logger(name: str) -> logging.Logger:
    """
    Get a module logger that propagates to the package handlers.

    Args:
        name: Logger name, usually ``__name__``.

    Returns:
        logging.Logger: Logger instance.
    """
    logger = logging.getLogger(name)
    logger.propagate = True
    return logger
