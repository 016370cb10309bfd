"""Pytest configuration.

Run pytest from this project's root; pythonpath in pyproject.toml puts src/ on
the import path, and importlib import mode lets test modules in different
layers share a basename.
"""

import logging
from collections.abc import Iterator

import pytest

@pytest.fixture(autouse=True)
def _restore_logger_state() -> Iterator[None]:
    """The CLI reconfigures the reducer_health logger; put it back after each test."""
    logger = logging.getLogger("reducer_health")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    for handler in handlers:
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = propagate
