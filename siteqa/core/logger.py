"""Logging setup for siteqa entry points.

Every record carries the namespace of the site being crawled or queried, so
interleaved requests can be told apart in one log file. The namespace is
bound for the duration of a request with ``bind_namespace`` and defaults to
"-" outside of one.

Examples:
    >>> from siteqa.core.logger import bind_namespace, configure_logging
    >>> logger = configure_logging(Settings())
    >>> with bind_namespace("example_com_3f2a9c0d1b4e5f60"):
    ...     logger.info("Crawling https://example.com/")
    2026-10-17 12:00:00,123 | INFO | siteqa | example_com_3f2a9c0d1b4e5f60 | Crawling ...
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from siteqa.core.config import Settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(namespace)s | %(message)s"

ROOT_LOGGER = "siteqa"
NO_NAMESPACE = "-"

MAX_LOG_SIZE_BYTES = 100 * 1024 * 1024
BACKUP_COUNT = 5

_current_namespace: ContextVar[str] = ContextVar("siteqa_namespace", default=NO_NAMESPACE)


@contextmanager
def bind_namespace(namespace: str) -> Iterator[None]:
    """Tag every record logged inside the block with namespace."""
    token = _current_namespace.set(namespace)
    try:
        yield
    finally:
        _current_namespace.reset(token)


class NamespaceFilter(logging.Filter):
    """Adds the bound namespace to each record as ``record.namespace``."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.namespace = _current_namespace.get()
        return True


def get_logger(
    name: str = ROOT_LOGGER,
    log_level: str = "INFO",
    log_file: Path | None = None,
) -> logging.Logger:
    """Attach console and rotating file handlers to a logger.

    Library modules log through ``logging.getLogger(__name__)`` and inherit
    these handlers from the ``siteqa`` logger. Calling again replaces the
    handlers instead of adding more.

    Args:
        name: Logger to configure
        log_level: Level name, case-insensitive
        log_file: Rotating log file (100MB x 5), None for console only

    Raises:
        AttributeError: If log_level is not a logging level name
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, log_level.upper()))
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    context = NamespaceFilter()

    console = logging.StreamHandler()
    console.setLevel(logging.INFO)
    console.setFormatter(formatter)
    console.addFilter(context)
    logger.addHandler(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file, maxBytes=MAX_LOG_SIZE_BYTES, backupCount=BACKUP_COUNT
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(context)
        logger.addHandler(file_handler)

    return logger


def configure_logging(settings: Settings) -> logging.Logger:
    """Configure the ``siteqa`` logger from settings (log_level, log_file)."""
    return get_logger(ROOT_LOGGER, log_level=settings.log_level, log_file=settings.log_file)
