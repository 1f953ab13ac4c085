"""
Renumber Sync - recompute and persist `order` after structural changes.

Every block of the affected list gets `order = position + 1` and is saved,
whether or not its order changed. That keeps the server's stored order
equal to the client's view at the cost of one write per block. The saves
run concurrently and may complete in any order.
"""

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

import structlog

from campaign_builder.builder.blocks import BlockController
from campaign_builder.core.exceptions import PersistenceError

if TYPE_CHECKING:
    from campaign_builder.builder.root import BuilderRoot

logger = structlog.get_logger()


@dataclass
class RenumberReport:
    """Outcome of one renumber pass."""
    scope: str
    orders: dict[str, int] = field(default_factory=dict)   # block key -> order
    saved: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)   # block key -> error

    @property
    def ok(self) -> bool:
        return not self.failed


class RenumberSync:
    """Order assignment plus save-every-sibling persistence."""

    def __init__(self, root: "BuilderRoot"):
        self.root = root

    async def renumber_phases(self) -> RenumberReport:
        """Walk the whole phase list."""
        blocks = []
        for index, phase in enumerate(self.root.store.phase_list()):
            phase.order = index + 1
            blocks.append(self.root.block(phase.key))
        return await self._persist_all("phases", blocks)

    async def renumber_activities(self, phase_key: str) -> RenumberReport:
        """Walk one phase's activity list."""
        blocks = []
        for index, activity in enumerate(self.root.store.activities_of(phase_key)):
            activity.order = index + 1
            blocks.append(self.root.block(activity.key))
        return await self._persist_all(f"activities:{phase_key}", blocks)

    async def _persist_all(self, scope: str, blocks: list[BlockController]) -> RenumberReport:
        report = RenumberReport(scope=scope, orders={b.key: b.record.order for b in blocks})
        results = await asyncio.gather(
            *(block.save(close=False, notify=False) for block in blocks),
            return_exceptions=True,
        )

        first_error: Optional[str] = None
        for block, result in zip(blocks, results):
            if isinstance(result, PersistenceError):
                report.failed[block.key] = result.message
                first_error = first_error or result.message
            elif isinstance(result, BaseException):
                raise result
            elif result:
                report.saved.append(block.key)
            else:
                report.skipped.append(block.key)

        logger.info(
            "renumber_complete",
            scope=scope,
            blocks=len(blocks),
            saved=len(report.saved),
            skipped=len(report.skipped),
            failed=len(report.failed),
        )
        if first_error:
            self.root.prompter.alert(first_error)
        return report
