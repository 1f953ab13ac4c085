"""
Block Controllers - per-block editing behaviour and lifecycle.

A block is the editable unit for one Phase or one PhaseActivity. Its
lifecycle is derived, never stored separately:

    UNSAVED_OPEN -> SAVED_OPEN <-> SAVED_CLOSED -> REMOVED

- saved is exactly `record.id is not None`
- an unsaved block is always open
- REMOVED is terminal; every operation on a removed block raises ValueError
"""

from typing import TYPE_CHECKING, Any, Callable, Iterable, Optional

import structlog

from campaign_builder.core.exceptions import PersistenceError
from campaign_builder.core.models import (
    ActivityGoal,
    BlockKind,
    BlockState,
    BlockTab,
    ConditionalAction,
    ConditionalStatus,
    GoalOperation,
    Phase,
    PhaseActivity,
)
from campaign_builder.core.schemas import PhaseActivitySavePayload, PhaseSavePayload

if TYPE_CHECKING:
    from campaign_builder.builder.root import BuilderRoot

logger = structlog.get_logger()


def _optional_str(value: Any) -> Optional[str]:
    return str(value) if value not in (None, "") else None


def adopt_condition_ids(rows: Iterable[Any], records: Iterable[Any]) -> None:
    """
    Copy ids of newly created condition rows back from a save response.

    Rows without an id are matched, in order, against the response
    conditions whose ids the client does not know yet.
    """
    rows = list(rows)
    known = {row.id for row in rows if row.id is not None}
    fresh = iter([r.id for r in records if r.id is not None and r.id not in known])
    for row in rows:
        if row.id is None:
            row.id = next(fresh, None)


class BlockController:
    """Behaviour shared by phase and activity blocks."""

    kind: BlockKind
    TABS: tuple[BlockTab, ...] = (BlockTab.SETTINGS, BlockTab.LOGIC)
    EDITABLE_FIELDS: dict[str, Callable[[Any], Any]] = {}
    DELETE_PROMPT = "Are you sure you want to delete this block?"

    def __init__(self, root: "BuilderRoot", record: Phase | PhaseActivity, *, is_open: bool = False):
        self.root = root
        self.record = record
        self.active_tab = BlockTab.SETTINGS
        self.last_error: Optional[str] = None
        self._open = is_open or not record.is_saved
        self._removed = False

    @property
    def key(self) -> str:
        return self.record.key

    @property
    def state(self) -> BlockState:
        if self._removed:
            return BlockState.REMOVED
        if not self.record.is_saved:
            return BlockState.UNSAVED_OPEN
        return BlockState.SAVED_OPEN if self._open else BlockState.SAVED_CLOSED

    @property
    def is_open(self) -> bool:
        return self.state in (BlockState.UNSAVED_OPEN, BlockState.SAVED_OPEN)

    @property
    def is_removed(self) -> bool:
        return self._removed

    @property
    def logic_visible(self) -> bool:
        return bool(self.record.conditions)

    def _ensure_live(self, action: str) -> None:
        if self._removed:
            raise ValueError(f"Cannot {action} a removed {self.kind.value} block")

    # ==================== Open / Close ====================

    def open(self) -> BlockState:
        self._ensure_live("open")
        self._open = True
        return self.state

    def close(self) -> BlockState:
        """Hide the editing form; edits already made stay on the record."""
        self._ensure_live("close")
        if not self.record.is_saved:
            logger.debug("block_close_ignored", kind=self.kind.value, key=self.key, reason="unsaved")
            return self.state
        self._open = False
        return self.state

    def toggle(self) -> BlockState:
        return self.close() if self.is_open else self.open()

    def select_tab(self, tab: BlockTab | str) -> BlockTab:
        self._ensure_live("select a tab on")
        tab = BlockTab(tab)
        if tab not in self.TABS:
            raise ValueError(f"{self.kind.value} blocks have no {tab.value} tab")
        self.active_tab = tab
        return tab

    # ==================== Field Edits ====================

    def edit(self, **changes: Any) -> Phase | PhaseActivity:
        """Apply form field values to the record."""
        self._ensure_live("edit")
        unknown = set(changes) - set(self.EDITABLE_FIELDS)
        if unknown:
            raise ValueError(f"Not editable on a {self.kind.value}: {', '.join(sorted(unknown))}")
        for name, value in changes.items():
            setattr(self.record, name, self.EDITABLE_FIELDS[name](value))
        return self.record

    # ==================== Lifecycle ====================

    async def cancel(self) -> BlockState:
        """
        Unsaved: remove the block entirely.
        Saved: back to the closed view, without rolling fields back.
        """
        self._ensure_live("cancel")
        if self.record.is_saved:
            self._open = False
            logger.debug("block_cancel_closed", kind=self.kind.value, key=self.key)
            return self.state

        was_last = self._position() == self._sibling_count() - 1
        self._detach()
        self._removed = True
        logger.info("block_cancelled", kind=self.kind.value, key=self.key)
        if not was_last:
            await self._renumber_siblings()
        return self.state

    async def save(self, close: bool = True, notify: bool = True) -> bool:
        """
        Create or update the record on the server.

        The order sent is the block's current position. On success the
        returned id is stored and, when `close` is set, the block closes.
        On failure the block keeps its pre-save state, the server message
        is alerted (when `notify` is set) and PersistenceError propagates.

        Returns False when the save was skipped (activity of an unsaved phase)
        or the block was cancelled or deleted while the request was in flight.
        A record created by such a request is deleted again.
        """
        self._ensure_live("save")
        self.record.order = self._position() + 1
        try:
            persisted = await self._persist()
        except PersistenceError as e:
            if self._removed and e.status_code == 404:
                logger.info("block_save_superseded", kind=self.kind.value, id=self.record.id)
                return False
            self.last_error = e.message
            logger.warning(
                "block_save_failed",
                kind=self.kind.value,
                key=self.key,
                status_code=e.status_code,
                error=e.message,
            )
            if notify:
                self.root.prompter.alert(e.message)
            raise

        if not persisted:
            return False
        self.last_error = None
        if self._removed:
            logger.warning("block_saved_after_removal", kind=self.kind.value, id=self.record.id)
            await self._discard_remote(notify)
            return False
        if close:
            self._open = False
        return True

    async def _discard_remote(self, notify: bool) -> None:
        """Delete the server record of a block that is already gone locally."""
        try:
            await self._delete_remote()
        except PersistenceError as e:
            self.last_error = e.message
            logger.warning(
                "block_discard_failed",
                kind=self.kind.value,
                id=self.record.id,
                status_code=e.status_code,
                error=e.message,
            )
            if notify:
                self.root.prompter.alert(e.message)
            raise
        logger.info("block_discarded", kind=self.kind.value, id=self.record.id)

    async def delete(self) -> bool:
        """Confirm, delete on the server, drop the block, renumber siblings."""
        self._ensure_live("delete")
        if not self.root.prompter.confirm(self.DELETE_PROMPT):
            logger.info("block_delete_declined", kind=self.kind.value, key=self.key)
            return False

        if self.record.is_saved:
            try:
                await self._delete_remote()
            except PersistenceError as e:
                self.last_error = e.message
                logger.warning(
                    "block_delete_failed",
                    kind=self.kind.value,
                    id=self.record.id,
                    status_code=e.status_code,
                    error=e.message,
                )
                self.root.prompter.alert(e.message)
                raise

        self._detach()
        self._removed = True
        logger.info("block_deleted", kind=self.kind.value, key=self.key, id=self.record.id)
        await self._renumber_siblings()
        return True

    # ==================== Hooks ====================

    def _position(self) -> int:
        raise NotImplementedError

    def _sibling_count(self) -> int:
        raise NotImplementedError

    async def _persist(self) -> bool:
        raise NotImplementedError

    async def _delete_remote(self) -> None:
        raise NotImplementedError

    def _detach(self) -> None:
        raise NotImplementedError

    async def _renumber_siblings(self) -> None:
        raise NotImplementedError


class PhaseBlock(BlockController):
    """A phase in the campaign's phase list."""

    kind = BlockKind.PHASE
    DELETE_PROMPT = "Are you sure you want to delete this phase?"
    EDITABLE_FIELDS = {
        "name": lambda v: v or "",
        "description": lambda v: v or "",
        "requires_approval": bool,
        "conditional_action": ConditionalAction,
        "conditional_status": ConditionalStatus,
    }

    @property
    def phase(self) -> Phase:
        return self.record

    @property
    def activities_visible(self) -> bool:
        """Activity list and drop zone only exist for saved phases."""
        return self.phase.is_saved and not self._removed

    def _position(self) -> int:
        return self.root.store.phase_position(self.key)

    def _sibling_count(self) -> int:
        return len(self.root.store.phase_list())

    async def _persist(self) -> bool:
        phase = self.phase
        payload = PhaseSavePayload.from_model(phase)
        created = phase.id is None
        if created:
            response = await self.root.client.create_phase(payload)
        else:
            response = await self.root.client.update_phase(phase.id, payload)

        phase.id = response.id
        adopt_condition_ids(phase.conditions, response.phase_conditions)
        logger.info(
            "phase_created" if created else "phase_updated",
            phase_id=phase.id,
            name=phase.name,
            order=phase.order,
            conditions=len(phase.conditions),
        )
        return True

    async def _delete_remote(self) -> None:
        await self.root.client.delete_phase(self.phase.id)

    def _detach(self) -> None:
        for activity in self.root.store.activities_of(self.key):
            self.root.forget(activity.key)
        self.root.store.remove_phase(self.key)
        self.root.forget(self.key)

    async def _renumber_siblings(self) -> None:
        await self.root.renumber.renumber_phases()


class ActivityBlock(BlockController):
    """An activity inside a phase's activity list."""

    kind = BlockKind.ACTIVITY
    TABS = (BlockTab.SETTINGS, BlockTab.LOGIC, BlockTab.GOALS)
    DELETE_PROMPT = "Are you sure you want to delete this activity?"
    EDITABLE_FIELDS = {
        "display_name": lambda v: v or "",
        "due_date": _optional_str,
        "required": bool,
        "conditional_action": ConditionalAction,
        "conditional_status": ConditionalStatus,
    }

    def __init__(self, root: "BuilderRoot", record: PhaseActivity, *, is_open: bool = False):
        super().__init__(root, record, is_open=is_open)
        self._detached_from: Optional[str] = None
        self._detached_phase_id: Optional[int] = None

    @property
    def activity(self) -> PhaseActivity:
        return self.record

    @property
    def phase(self) -> Phase:
        return self.root.store.owner_of(self.key)

    def _position(self) -> int:
        return self.root.store.activity_position(self.key)

    def _sibling_count(self) -> int:
        return len(self.root.store.activities_of(self.phase.key))

    async def _persist(self) -> bool:
        activity = self.activity
        phase = self.phase
        if phase.id is None:
            logger.info("activity_save_skipped", key=self.key, reason="phase_unsaved")
            return False

        payload = PhaseActivitySavePayload.from_model(activity)
        created = activity.id is None
        if created:
            response = await self.root.client.create_phase_activity(phase.id, payload)
        else:
            response = await self.root.client.update_phase_activity(phase.id, activity.id, payload)

        activity.id = response.id
        adopt_condition_ids(activity.conditions, response.phase_activity_conditions)
        logger.info(
            "activity_created" if created else "activity_updated",
            phase_id=phase.id,
            activity_id=activity.id,
            identity=f"{activity.activity_type}:{activity.activity_id}",
            order=activity.order,
        )
        return True

    async def _delete_remote(self) -> None:
        # Once detached the owning phase is no longer reachable through the store
        phase_id = self._detached_phase_id if self._removed else self.phase.id
        await self.root.client.delete_phase_activity(phase_id, self.activity.id)

    def _detach(self) -> None:
        self._detached_phase_id = self.phase.id
        _, phase_key, _ = self.root.store.remove_activity(self.key)
        self._detached_from = phase_key
        self.root.forget(self.key)

    async def _renumber_siblings(self) -> None:
        if self._detached_from is not None:
            await self.root.renumber.renumber_activities(self._detached_from)

    # ==================== Module Settings ====================

    def edit_settings(self, **values: Any) -> dict[str, Any]:
        self._ensure_live("edit")
        self.activity.settings.update(values)
        return self.activity.settings

    # ==================== Goals ====================

    def add_goal(
        self,
        kpi: Optional[str] = None,
        operation: Optional[GoalOperation | str] = None,
        field_name: Optional[str] = None,
    ) -> ActivityGoal:
        self._ensure_live("add a goal to")
        goal = ActivityGoal(
            kpi=kpi,
            operation=GoalOperation(operation) if operation else None,
            field_name=field_name,
        )
        self.activity.goals.append(goal)
        return goal

    def remove_goal(self, goal_key: str) -> bool:
        self._ensure_live("remove a goal from")
        for goal in self.activity.goals:
            if goal.key == goal_key:
                self.activity.goals.remove(goal)
                return True
        return False
