"""Pytest configuration for repo-wide test behavior."""

# Ensure project root on sys.path for imports
import logging
import os
import sys

import pytest

root = os.path.dirname(os.path.abspath(__file__))
proj = os.path.abspath(os.path.join(root, ".."))
if proj not in sys.path:
    sys.path.insert(0, proj)

from tests.utils.fixtures import CaptureSink, make_notification  # noqa: E402


@pytest.fixture
def notification():
    return make_notification()


@pytest.fixture
def capture_sink():
    return CaptureSink()


@pytest.fixture(autouse=True)
def _debug_logging():
    # Logger state is sticky across tests once configure_logging ran
    loggers = [logging.getLogger(name) for name in ("jaegercat", "uvicorn", "uvicorn.error")]
    saved = [(logger, logger.level, list(logger.handlers)) for logger in loggers]
    loggers[0].setLevel(logging.DEBUG)
    yield
    for logger, level, handlers in saved:
        logger.setLevel(level)
        for handler in list(logger.handlers):
            if handler not in handlers:
                logger.removeHandler(handler)
