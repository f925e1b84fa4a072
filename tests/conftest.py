"""Global pytest configuration."""

import logging

import pytest

from core.logging import LOGGER_NAMESPACE

pytest_plugins = ["tests.fixtures.registry"]


@pytest.fixture(autouse=True)
def reset_app_logger():
    """Drop handlers installed by configure_logging so tests do not leak file handles."""
    yield
    logger = logging.getLogger(LOGGER_NAMESPACE)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
