"""
Campaign Builder - Test Fixtures
=================================

Shared pytest fixtures for all tests.
"""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport

from campaign_builder.builder.client import PersistenceClient
from campaign_builder.builder.root import BuilderRoot
from campaign_builder.core.models import PaletteItem
from mock_campaign_api import create_mock_app

CAMPAIGN_ID = 1


# ==========================================================================
# Prompter
# ==========================================================================

class ScriptedPrompter:
    """Records alerts and answers confirmations from a script."""

    def __init__(self, answers: list[bool] | None = None, default: bool = True):
        self.answers = list(answers or [])
        self.default = default
        self.alerts: list[str] = []
        self.confirms: list[str] = []

    def confirm(self, message: str) -> bool:
        self.confirms.append(message)
        if self.answers:
            return self.answers.pop(0)
        return self.default

    def alert(self, message: str) -> None:
        self.alerts.append(message)


# ==========================================================================
# Backend Fixtures
# ==========================================================================

@pytest.fixture
def mock_api() -> FastAPI:
    """Fresh in-memory campaign backend."""
    return create_mock_app()


@pytest_asyncio.fixture
async def api_client(mock_api: FastAPI) -> AsyncGenerator[PersistenceClient, None]:
    """
    Persistence client wired to the mock backend.
    """
    transport = ASGITransport(app=mock_api)
    async with PersistenceClient(
        CAMPAIGN_ID,
        base_url="http://test",
        auth_token="token-123",
        user_email="ops@example.com",
        company_id=7,
        transport=transport,
    ) as client:
        yield client


# ==========================================================================
# Builder Fixtures
# ==========================================================================

@pytest.fixture
def prompter() -> ScriptedPrompter:
    return ScriptedPrompter()


@pytest.fixture
def palette() -> list[PaletteItem]:
    return [
        PaletteItem("module", 1, "Expenses"),
        PaletteItem("module", 2, "Media"),
        PaletteItem("module", 4, "Comments"),
        PaletteItem("custom", 12, "Intake Form"),
    ]


@pytest.fixture
def root(api_client: PersistenceClient, prompter: ScriptedPrompter, palette: list[PaletteItem]) -> BuilderRoot:
    return BuilderRoot(CAMPAIGN_ID, api_client, prompter, palette)


@pytest_asyncio.fixture
async def saved_phase(root: BuilderRoot):
    """A phase that has completed its first save."""
    block = root.add_phase()
    block.edit(name="Kickoff")
    await block.save()
    return block
