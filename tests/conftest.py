"""
Shared test fixtures for the railflow test suite.

Settings and logging setup mutate process-wide state (the Error message
registry, the cached settings, the "railflow" loggers and structlog's global
configuration); the autouse fixture below puts all of it back after each test.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest
import structlog

from railflow import Error
from railflow.config import get_settings

_LOGGERS = ("railflow", "railflow.dsl", "railflow.operation", "railflow.execution")


@pytest.fixture(autouse=True)
def _isolate_global_state() -> Iterator[None]:
    """Restore the error registry, settings cache and loggers after each test."""
    messages = dict(Error.default_messages)
    levels = {name: logging.getLogger(name).level for name in _LOGGERS}
    handlers = list(logging.getLogger("railflow").handlers)
    get_settings.cache_clear()

    yield

    Error.default_messages.clear()
    Error.default_messages.update(messages)
    for name, level in levels.items():
        logging.getLogger(name).setLevel(level)
    logging.getLogger("railflow").handlers[:] = handlers
    get_settings.cache_clear()
    structlog.reset_defaults()
