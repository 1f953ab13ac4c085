"""
Drag & Drop Coordinator - reordering and drop admission control.

Handles:
- Phase reordering (whole phase list renumbered afterwards)
- Activity reordering within a phase or between phases
- Palette items received into an activity list or dropped on its empty zone

Admission rules for activity lists:
- the owning phase must be saved
- no two activities in one phase may share (activity_type, activity_id)
A rejected drop is undone locally; nothing is sent to the server.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Optional

import structlog

from campaign_builder.builder.blocks import ActivityBlock
from campaign_builder.builder.renumber import RenumberReport
from campaign_builder.core.exceptions import DuplicateActivityError, PersistenceError
from campaign_builder.core.models import PaletteItem, PhaseActivity

if TYPE_CHECKING:
    from campaign_builder.builder.root import BuilderRoot

logger = structlog.get_logger()

DUPLICATE_ACTIVITY_MESSAGE = "You can't add the same Activity to the same Phase more than once!"


class DropOutcome(str, Enum):
    ACCEPTED = "accepted"
    DUPLICATE = "duplicate"
    PHASE_UNSAVED = "phase_unsaved"


@dataclass
class DropResult:
    outcome: DropOutcome
    block: Optional[ActivityBlock] = None
    reports: list[RenumberReport] = field(default_factory=list)

    @property
    def accepted(self) -> bool:
        return self.outcome == DropOutcome.ACCEPTED


class DragDropCoordinator:
    """Sorting and dropping for the phase list and every activity list."""

    def __init__(self, root: "BuilderRoot"):
        self.root = root

    # ==================== Phases ====================

    async def move_phase(self, phase_key: str, new_index: int) -> RenumberReport:
        self.root.block(phase_key)._ensure_live("move")
        self.root.store.move_phase(phase_key, new_index)
        logger.debug("phase_moved", key=phase_key, index=new_index)
        return await self.root.renumber.renumber_phases()

    # ==================== Admission ====================

    def check_admission(
        self, phase_key: str, identity: tuple[str, int], exclude: Optional[str] = None
    ) -> None:
        """Raise DuplicateActivityError if the phase already holds this activity."""
        if self.root.store.has_identity(phase_key, identity, exclude=exclude):
            raise DuplicateActivityError(*identity)

    def _reject_duplicate(self, phase_key: str, identity: tuple[str, int]) -> DropResult:
        logger.info(
            "activity_drop_rejected",
            phase=phase_key,
            identity=f"{identity[0]}:{identity[1]}",
            reason="duplicate",
        )
        self.root.prompter.alert(DUPLICATE_ACTIVITY_MESSAGE)
        return DropResult(DropOutcome.DUPLICATE)

    def _target_saved(self, phase_key: str) -> bool:
        phase = self.root.store.get_phase(phase_key)
        if phase.is_saved:
            return True
        logger.warning("activity_drop_refused", phase=phase_key, reason="phase_unsaved")
        return False

    def _materialize(self, phase_key: str, item: PaletteItem, index: Optional[int]) -> ActivityBlock:
        activity = PhaseActivity(
            activity_type=item.activity_type,
            activity_id=item.activity_id,
            display_name=item.display_name,
            order=1,
        )
        self.root.store.add_activity(phase_key, activity, index)
        return self.root.adopt(ActivityBlock(self.root, activity, is_open=True))

    # ==================== Palette Drops ====================

    async def receive_from_palette(
        self, phase_key: str, item: PaletteItem, index: Optional[int] = None
    ) -> DropResult:
        """
        A palette item dropped into a sortable activity list at `index`.

        A placeholder goes in first and the list is scanned around it; on a
        duplicate the placeholder is taken out again.
        """
        if not self._target_saved(phase_key):
            return DropResult(DropOutcome.PHASE_UNSAVED)

        placeholder = PhaseActivity(
            activity_type=item.activity_type,
            activity_id=item.activity_id,
            display_name=item.display_name,
        )
        self.root.store.add_activity(phase_key, placeholder, index)
        position = self.root.store.activity_position(placeholder.key)
        try:
            self.check_admission(phase_key, item.identity, exclude=placeholder.key)
        except DuplicateActivityError:
            self.root.store.remove_activity(placeholder.key)
            return self._reject_duplicate(phase_key, item.identity)

        self.root.store.remove_activity(placeholder.key)
        block = self._materialize(phase_key, item, position)
        logger.info("activity_received", phase=phase_key, identity=f"{item.activity_type}:{item.activity_id}")
        report = await self.root.renumber.renumber_activities(phase_key)
        return DropResult(DropOutcome.ACCEPTED, block, [report])

    async def drop_on_zone(self, phase_key: str, item: PaletteItem) -> DropResult:
        """A palette item dropped on the empty-state zone: append."""
        if not self._target_saved(phase_key):
            return DropResult(DropOutcome.PHASE_UNSAVED)
        try:
            self.check_admission(phase_key, item.identity)
        except DuplicateActivityError:
            return self._reject_duplicate(phase_key, item.identity)

        block = self._materialize(phase_key, item, None)
        logger.info("activity_dropped", phase=phase_key, identity=f"{item.activity_type}:{item.activity_id}")
        report = await self.root.renumber.renumber_activities(phase_key)
        return DropResult(DropOutcome.ACCEPTED, block, [report])

    # ==================== Activity Reordering ====================

    async def move_activity(
        self, activity_key: str, target_phase_key: str, new_index: int
    ) -> DropResult:
        """
        Reorder an existing activity. Moving into another phase re-homes it:
        the record under the old phase is deleted, the activity is created
        again under the new one, and its rules (which pointed at old
        siblings) are dropped.
        """
        block = self.root.block(activity_key)
        block._ensure_live("move")
        store = self.root.store
        source = store.owner_of(activity_key)

        if source.key == target_phase_key:
            store.move_activity(activity_key, target_phase_key, new_index)
            report = await self.root.renumber.renumber_activities(target_phase_key)
            return DropResult(DropOutcome.ACCEPTED, block, [report])

        if not self._target_saved(target_phase_key):
            return DropResult(DropOutcome.PHASE_UNSAVED)
        activity = store.get_activity(activity_key)
        try:
            self.check_admission(target_phase_key, activity.identity)
        except DuplicateActivityError:
            return self._reject_duplicate(target_phase_key, activity.identity)

        if activity.is_saved:
            try:
                await self.root.client.delete_phase_activity(source.id, activity.id)
            except PersistenceError as e:
                block.last_error = e.message
                self.root.prompter.alert(e.message)
                raise
        activity.id = None
        activity.conditions.clear()
        store.move_activity(activity_key, target_phase_key, new_index)
        logger.info("activity_rehomed", key=activity_key, source=source.key, target=target_phase_key)

        reports = await asyncio.gather(
            self.root.renumber.renumber_activities(source.key),
            self.root.renumber.renumber_activities(target_phase_key),
        )
        return DropResult(DropOutcome.ACCEPTED, block, list(reports))
