"""
Structured logging setup.

Modules get a logger with get_logger(__name__) and log key/value pairs:

    logger.info("User registered", user_id=user.id)

setup_logger() is called once by the entrypoint; until then structlog's
defaults apply.
"""

import logging
import sys
from typing import Optional

import structlog


def setup_logger(level: str = "INFO", fmt: str = "json", stream=None) -> None:
    """Configure stdlib logging and structlog for the whole process."""
    log_level = getattr(logging, str(level).upper(), logging.INFO)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)

    if fmt == "console":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None):
    """Return a structlog logger bound to the given module name"""
    return structlog.get_logger(name)
