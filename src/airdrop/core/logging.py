"""
Merkle Airdrop Distributor - Logging Configuration
"""

import logging
import sys

import structlog

from airdrop.core.config import settings


def setup_logging(level: str | None = None, json_logs: bool | None = None) -> None:
    """
    Configure structured logging.

    Args:
        level: Log level name, defaults to settings.LOG_LEVEL
        json_logs: Force JSON output, defaults to on in production
    """
    if json_logs is None:
        json_logs = settings.ENV == "production"
    level_name = (level or settings.LOG_LEVEL).upper()

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_logs:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Batch output (artifacts, roots) goes to stdout; logs stay on stderr
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level_name),
    )
