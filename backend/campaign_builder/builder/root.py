"""
Builder Root - one campaign editing session.

Owns the entity store, the block controllers, the collaborators that act on
them (renumbering, condition editing, drag & drop) and the trigger table a
view layer dispatches into. Nothing here is global: two roots built for two
campaigns share no state.
"""

from typing import Any, Iterable, Optional

import structlog

from campaign_builder.builder.blocks import ActivityBlock, BlockController, PhaseBlock
from campaign_builder.builder.client import PersistenceClient
from campaign_builder.builder.conditions import ConditionEditor
from campaign_builder.builder.dispatch import HandlerRegistry, Prompter, Trigger
from campaign_builder.builder.dragdrop import DragDropCoordinator
from campaign_builder.builder.renderer import PhaseBlockView, render_phase
from campaign_builder.builder.renumber import RenumberSync
from campaign_builder.builder.store import EntityStore
from campaign_builder.core.config import settings
from campaign_builder.core.models import PaletteItem, Phase

logger = structlog.get_logger()


class BuilderRoot:
    """
    Campaign builder session.

    Usage:
        async with PersistenceClient(campaign_id) as client:
            root = BuilderRoot(campaign_id, client, prompter, palette)
            await root.load()
            block = root.add_phase()
            await root.dispatch.dispatch(Trigger.SAVE_PHASE, key=block.key)
    """

    def __init__(
        self,
        campaign_id: int | str,
        client: PersistenceClient,
        prompter: Prompter,
        palette: Iterable[PaletteItem] = (),
    ):
        self.campaign_id = campaign_id
        self.client = client
        self.prompter = prompter
        self.palette: list[PaletteItem] = list(palette)

        self.store = EntityStore()
        self.blocks: dict[str, BlockController] = {}
        self.phase_count = 0

        self.renumber = RenumberSync(self)
        self.conditions = ConditionEditor(self)
        self.dragdrop = DragDropCoordinator(self)

        self.dispatch = HandlerRegistry()
        self._register_handlers()

    # ==================== Session ====================

    async def load(self) -> list[PhaseBlock]:
        """Fetch the campaign's phases and build closed blocks in server order."""
        records = await self.client.list_phases()

        self.store = EntityStore()
        self.blocks = {}
        phase_blocks = []
        for record in records:
            phase = self.store.add_phase(record.to_model())
            phase_blocks.append(self.adopt(PhaseBlock(self, phase)))
            for activity_record in record.phase_activities:
                activity = self.store.add_activity(phase.key, activity_record.to_model())
                self.adopt(ActivityBlock(self, activity))

        self.phase_count = len(records)
        logger.info(
            "builder_loaded",
            campaign_id=self.campaign_id,
            phases=self.phase_count,
            activities=len(self.store.activities),
        )
        return phase_blocks

    def add_phase(self) -> PhaseBlock:
        """Append an open, unsaved phase at the end of the list."""
        # The counter only grows; the order is the phase's position in the list
        self.phase_count += 1
        phase = Phase(name=settings.DEFAULT_PHASE_NAME, order=len(self.store.phase_list()) + 1)
        self.store.add_phase(phase)
        block = self.adopt(PhaseBlock(self, phase, is_open=True))
        logger.info("phase_added", key=phase.key, order=phase.order)
        return block

    # ==================== Block Registry ====================

    def adopt(self, block: BlockController) -> BlockController:
        self.blocks[block.key] = block
        return block

    def forget(self, key: str) -> None:
        self.blocks.pop(key, None)

    def block(self, key: str) -> BlockController:
        try:
            return self.blocks[key]
        except KeyError:
            raise ValueError(f"Unknown block {key}") from None

    def phase_block(self, key: str) -> PhaseBlock:
        block = self.block(key)
        if not isinstance(block, PhaseBlock):
            raise ValueError(f"Block {key} is not a phase")
        return block

    def activity_block(self, key: str) -> ActivityBlock:
        block = self.block(key)
        if not isinstance(block, ActivityBlock):
            raise ValueError(f"Block {key} is not an activity")
        return block

    def palette_item(self, item: PaletteItem | tuple[str, int]) -> PaletteItem:
        """Resolve a drag source given either the item or its (type, id)."""
        if isinstance(item, PaletteItem):
            return item
        activity_type, activity_id = item
        for candidate in self.palette:
            if candidate.identity == (activity_type, int(activity_id)):
                return candidate
        raise ValueError(f"Activity {activity_type}:{activity_id} is not in the palette")

    # ==================== Views ====================

    def render(self) -> list[PhaseBlockView]:
        phases = self.store.phase_list()
        views = []
        for phase in phases:
            block = self.blocks[phase.key]
            activities = self.store.activities_of(phase.key)
            activity_state = {
                a.key: (not self.blocks[a.key].is_open, self.blocks[a.key].active_tab)
                for a in activities
            }
            views.append(
                render_phase(
                    phase,
                    activities,
                    phases,
                    closed=not block.is_open,
                    active_tab=block.active_tab,
                    activity_state=activity_state,
                )
            )
        return views

    # ==================== Dispatch Table ====================

    def _register_handlers(self) -> None:
        handlers = {
            Trigger.ADD_PHASE: self.add_phase,
            Trigger.EDIT_PHASE: self._edit_phase,
            Trigger.SAVE_PHASE: lambda key: self.phase_block(key).save(),
            Trigger.CANCEL_PHASE: lambda key: self.phase_block(key).cancel(),
            Trigger.DELETE_PHASE: lambda key: self.phase_block(key).delete(),
            Trigger.ADD_PHASE_CONDITION: lambda key: self.conditions.add_condition(self.phase_block(key)),
            Trigger.REMOVE_PHASE_CONDITION: lambda key, row_key: self.conditions.remove_condition(
                self.phase_block(key), row_key
            ),
            Trigger.PHASE_REFERENCE_CHANGE: lambda key, row_key, reference: self.conditions.on_reference_change(
                self.phase_block(key), row_key, reference
            ),
            Trigger.EDIT_ACTIVITY: self._edit_activity,
            Trigger.SAVE_ACTIVITY: lambda key: self.activity_block(key).save(),
            Trigger.CANCEL_ACTIVITY: lambda key: self.activity_block(key).cancel(),
            Trigger.DELETE_ACTIVITY: lambda key: self.activity_block(key).delete(),
            Trigger.ADD_ACTIVITY_CONDITION: lambda key: self.conditions.add_condition(self.activity_block(key)),
            Trigger.REMOVE_ACTIVITY_CONDITION: lambda key, row_key: self.conditions.remove_condition(
                self.activity_block(key), row_key
            ),
            Trigger.ACTIVITY_REFERENCE_CHANGE: lambda key, row_key, reference: self.conditions.on_reference_change(
                self.activity_block(key), row_key, reference
            ),
            Trigger.ADD_GOAL: self._add_goal,
            Trigger.REMOVE_GOAL: lambda key, goal_key: self.activity_block(key).remove_goal(goal_key),
            Trigger.TOGGLE_BLOCK: lambda key: self.block(key).toggle(),
            Trigger.SELECT_TAB: lambda key, tab: self.block(key).select_tab(tab),
            Trigger.EDIT_CONDITION: self._edit_condition,
            Trigger.SORT_PHASES: lambda key, index: self.dragdrop.move_phase(key, index),
            Trigger.SORT_ACTIVITIES: lambda key, phase_key, index: self.dragdrop.move_activity(
                key, phase_key, index
            ),
            Trigger.RECEIVE_ACTIVITY: self._receive_activity,
            Trigger.DROP_ACTIVITY: lambda phase_key, item: self.dragdrop.drop_on_zone(
                phase_key, self.palette_item(item)
            ),
        }
        for trigger, handler in handlers.items():
            self.dispatch.register(trigger, handler)

    def _edit_phase(self, key: str, **changes: Any) -> Phase:
        return self.phase_block(key).edit(**changes)

    def _edit_activity(self, key: str, module_settings: Optional[dict] = None, **changes: Any):
        block = self.activity_block(key)
        if module_settings:
            block.edit_settings(**module_settings)
        return block.edit(**changes)

    def _add_goal(self, key: str, kpi: Optional[str] = None, operation: Optional[str] = None,
                  field_name: Optional[str] = None):
        return self.activity_block(key).add_goal(kpi, operation, field_name)

    def _edit_condition(self, key: str, row_key: str, condition: Any = None, operator: Any = None):
        return self.conditions.edit_condition(
            self.block(key), row_key, condition=condition, operator=operator
        )

    def _receive_activity(self, phase_key: str, item: Any, index: Optional[int] = None):
        return self.dragdrop.receive_from_palette(phase_key, self.palette_item(item), index)
