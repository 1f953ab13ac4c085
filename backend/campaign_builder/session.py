"""
Campaign Builder - Session Entry Point
=======================================

Opens one editing session: logging, the persistence client and a loaded
BuilderRoot. Embedding code starts here.

Usage:
    async with open_session(campaign_id, prompter, palette) as root:
        block = root.add_phase()
        await root.dispatch.dispatch(Trigger.SAVE_PHASE, key=block.key)
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Iterable

import structlog

from campaign_builder.builder.client import PersistenceClient
from campaign_builder.builder.dispatch import Prompter
from campaign_builder.builder.root import BuilderRoot
from campaign_builder.core.config import settings
from campaign_builder.core.logging_config import configure_logging
from campaign_builder.core.models import PaletteItem

logger = structlog.get_logger()


@asynccontextmanager
async def open_session(
    campaign_id: int | str,
    prompter: Prompter,
    palette: Iterable[PaletteItem] = (),
    *,
    log_level: str | None = None,
    **client_options: Any,
) -> AsyncGenerator[BuilderRoot, None]:
    """
    Session lifespan.

    Startup:
    - Configure structured logging
    - Open the persistence client and load the campaign

    Shutdown:
    - Close the HTTP client
    """
    configure_logging(log_level)
    logger.info("session_starting", app=settings.APP_NAME, version=settings.APP_VERSION, campaign_id=campaign_id)

    async with PersistenceClient(campaign_id, **client_options) as client:
        root = BuilderRoot(campaign_id, client, prompter, palette)
        await root.load()
        yield root

    logger.info("session_closed", campaign_id=campaign_id)
