"""Logging configuration."""

import logging
import os
import sys

from pydantic import BaseModel


class LogConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    # Per-request chatter from the SDK and HTTP stack
    quiet_loggers: tuple[str, ...] = ("anthropic", "httpx", "httpcore", "uvicorn.access")


def setup_logging(config: LogConfig | None = None) -> None:
    """Configure root logging for the service process."""
    if config is None:
        config = LogConfig(level=os.getenv("LOG_LEVEL", "INFO"))

    logging.basicConfig(
        level=getattr(logging, config.level.upper(), logging.INFO),
        format=config.format,
        datefmt=config.date_format,
        stream=sys.stdout,
        force=True,
    )

    for name in config.quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str, level: str | None = None) -> logging.Logger:
    """Get a logger for a module.

    Args:
        name: Module name (typically __name__)
        level: Explicit level; defaults to LOG_LEVEL

    Returns:
        Logger with its level set
    """
    logger = logging.getLogger(name)
    logger.setLevel((level or os.getenv("LOG_LEVEL", "INFO")).upper())
    return logger
