"""
Logging setup for the policycard CLI.

Library modules only create loggers (``logging.getLogger(__name__)``) and
never install handlers. The CLI calls configure_logging() once to route
records to stderr through Rich.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

DEFAULT_LOG_LEVEL = "WARNING"


def configure_logging(level: str | int = DEFAULT_LOG_LEVEL) -> None:
    """
    Install a Rich handler on the ``policycard`` logger.

    Args:
        level: Level name ("DEBUG", "INFO", ...) or number

    Raises:
        ValueError: If the level name is unknown
    """
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level}")
        level = resolved

    logger = logging.getLogger("policycard")
    logger.setLevel(level)
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
