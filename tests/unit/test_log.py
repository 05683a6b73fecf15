"""
Unit tests for CLI logging setup.
"""

import logging
from collections.abc import Generator

import pytest
from rich.logging import RichHandler

from policycard.log import configure_logging


@pytest.fixture
def package_logger() -> Generator[logging.Logger, None, None]:
    """The package logger, restored after the test."""
    logger = logging.getLogger("policycard")
    level, handlers = logger.level, list(logger.handlers)
    yield logger
    logger.setLevel(level)
    logger.handlers[:] = handlers


class TestConfigureLogging:
    """Tests for configure_logging()."""

    def test_sets_level_by_name(self, package_logger: logging.Logger) -> None:
        configure_logging("debug")
        assert package_logger.level == logging.DEBUG

    def test_accepts_numeric_level(self, package_logger: logging.Logger) -> None:
        configure_logging(logging.INFO)
        assert package_logger.level == logging.INFO

    def test_single_rich_handler(self, package_logger: logging.Logger) -> None:
        configure_logging("INFO")
        configure_logging("WARNING")
        rich_handlers = [h for h in package_logger.handlers if isinstance(h, RichHandler)]
        assert len(rich_handlers) == 1

    def test_unknown_level(self, package_logger: logging.Logger) -> None:
        with pytest.raises(ValueError, match="Unknown log level"):
            configure_logging("LOUD")
