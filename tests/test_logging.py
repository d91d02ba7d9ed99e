"""Tests for abigen.logging helpers."""

from __future__ import annotations

import logging
from typing import List

from abigen.logging import for_source, get_logger, report_warnings


class _ListHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.messages: List[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.messages.append(record.getMessage())


def _capture(name: str) -> tuple[logging.Logger, _ListHandler]:
    logger = get_logger(name)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    handler = _ListHandler()
    logger.addHandler(handler)
    return logger, handler


def test_get_logger_uses_abigen_hierarchy() -> None:
    assert get_logger().name == "abigen"
    assert get_logger("discovery").name == "abigen.discovery"


def test_for_source_prefixes_source_id() -> None:
    logger, handler = _capture("test-source")
    try:
        for_source(logger, "bend").info("Discovered %d artifacts", 3)
    finally:
        logger.removeHandler(handler)

    assert handler.messages == ["[bend] Discovered 3 artifacts"]


def test_report_warnings_counts_repeats() -> None:
    logger, handler = _capture("test-warnings")
    try:
        count = report_warnings(["a", "b", "a", "a"], logger)
    finally:
        logger.removeHandler(handler)

    assert count == 4
    assert handler.messages == ["a (x3)", "b"]
