"""
Campaign Builder - Core Package
===============================

Configuration, logging, domain models and wire schemas.
"""

from campaign_builder.core.config import settings
from campaign_builder.core.logging_config import configure_logging

__all__ = ["configure_logging", "settings"]
