"""Logging helpers shared by the abigen pipeline and CLI."""

from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path
from typing import Any, Iterable, MutableMapping

_LOGGER_NAME = "abigen"
_CONSOLE_FORMAT = "[abigen] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class SourceLogger(logging.LoggerAdapter):
    """Prefixes every record with the id of the source being processed."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        return f"[{self.extra['source_id']}] {msg}", kwargs


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a logger under the ``abigen`` hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def for_source(logger: logging.Logger, source_id: str) -> SourceLogger:
    return SourceLogger(logger, {"source_id": source_id})


def report_warnings(warnings: Iterable[str], logger: logging.Logger | None = None) -> int:
    """Log each distinct warning once, in first-seen order, with a repeat count.

    Returns the number of warnings represented, repeats included.
    """
    target = logger or get_logger()
    counts = Counter(warnings)
    for warning, count in counts.items():
        if count > 1:
            target.warning("%s (x%d)", warning, count)
        else:
            target.warning(warning)
    return sum(counts.values())


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Install the console handler and, optionally, a DEBUG-level file sink."""
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(logging.DEBUG if log_file is not None else level)
    logger.propagate = False

    # Repeated CLI invocations in one process must not stack handlers.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(file_handler)

    return logger


__all__ = ["SourceLogger", "configure_logging", "for_source", "get_logger", "report_warnings"]
