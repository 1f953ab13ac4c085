"""
Campaign Builder - Structured Logging
======================================

structlog configuration shared by every builder module.
campaign_builder.session.open_session() calls configure_logging() on startup.
"""

import logging

import structlog

from campaign_builder.core.config import settings


def configure_logging(level: str | None = None) -> None:
    """Configure stdlib logging and the structlog processor chain."""
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO),
    )

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
            structlog.processors.JSONRenderer() if settings.is_production else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
