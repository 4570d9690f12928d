"""
Shared fixtures.
"""

import logging

import pytest

from bucket_audit.logging_config import LOGGER_NAME


@pytest.fixture(autouse=True)
def restore_package_logger():
    """Undo setup_logging() side effects so caplog keeps seeing records."""
    logger = logging.getLogger(LOGGER_NAME)
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in logger.handlers:
            logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = propagate
