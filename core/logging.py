"""
Logging configuration
"""
import logging
import sys

from core.config import LoggingConfig


def setup_logging(config: LoggingConfig) -> None:
    """Configure the root logger once at process start."""
    level = logging.getLevelName(config.level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {config.level!r}")

    logging.basicConfig(
        level=level,
        format=config.format,
        stream=sys.stdout,
        force=True,
    )
    # Keep per-request noise out of session logs
    logging.getLogger("httpx").setLevel(logging.WARNING)
