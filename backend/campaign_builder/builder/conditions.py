"""
Condition Editor - rule rows on phase and activity blocks.

Rows are only added/removed here; the rows themselves are persisted with
their block's save. A block's logic panel is shown exactly while its
condition list is non-empty.
"""

from typing import TYPE_CHECKING, Any, Optional

import structlog

from campaign_builder.builder.blocks import ActivityBlock, BlockController, PhaseBlock
from campaign_builder.builder.renderer import (
    ConditionRowView,
    render_activity_condition,
    render_phase_condition,
)
from campaign_builder.core.exceptions import PersistenceError
from campaign_builder.core.models import (
    ActivityCondition,
    ActivityPredicate,
    ConditionOperator,
    PhaseCondition,
    PhasePredicate,
    is_sentinel,
)

if TYPE_CHECKING:
    from campaign_builder.builder.root import BuilderRoot

logger = structlog.get_logger()


def _reference(value: Any) -> Optional[int]:
    """Normalise a selected target; blank / "Select One" means no target."""
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class ConditionEditor:
    """Add/remove lifecycle and option gating of condition rows."""

    def __init__(self, root: "BuilderRoot"):
        self.root = root

    def _row(self, block: BlockController, row_key: str) -> PhaseCondition | ActivityCondition:
        for row in block.record.conditions:
            if row.key == row_key:
                return row
        raise ValueError(f"Unknown condition row {row_key}")

    # ==================== Add / Remove ====================

    def add_condition(self, block: BlockController) -> PhaseCondition | ActivityCondition:
        """Append an empty row; the logic panel becomes visible."""
        block._ensure_live("add a condition to")
        row = PhaseCondition() if isinstance(block, PhaseBlock) else ActivityCondition()
        block.record.conditions.append(row)
        logger.debug(
            "condition_added",
            kind=block.kind.value,
            block=block.key,
            rows=len(block.record.conditions),
        )
        return row

    async def remove_condition(self, block: BlockController, row_key: str) -> bool:
        """
        Drop a row. Persisted rows are deleted on the server too; if that
        fails the row is put back where it was and the error is alerted.
        """
        block._ensure_live("remove a condition from")
        row = self._row(block, row_key)
        position = block.record.conditions.index(row)
        block.record.conditions.remove(row)

        if row.id is not None:
            try:
                await self._delete_remote(block, row)
            except PersistenceError as e:
                block.record.conditions.insert(position, row)
                block.last_error = e.message
                logger.warning(
                    "condition_delete_failed",
                    kind=block.kind.value,
                    condition_id=row.id,
                    error=e.message,
                )
                self.root.prompter.alert(e.message)
                raise

        logger.debug(
            "condition_removed",
            kind=block.kind.value,
            block=block.key,
            condition_id=row.id,
            logic_visible=block.logic_visible,
        )
        return True

    async def _delete_remote(self, block: BlockController, row: PhaseCondition | ActivityCondition) -> None:
        client = self.root.client
        if isinstance(block, PhaseBlock):
            await client.delete_phase_condition(block.phase.id, row.id)
        else:
            await client.delete_activity_condition(block.phase.id, block.activity.id, row.id)

    # ==================== Editing ====================

    def on_reference_change(self, block: BlockController, row_key: str, reference: Any) -> ConditionRowView:
        """
        Set a row's target and return the re-gated row view.

        For phase rows the temporal condition/operator options are enabled
        only when the target is a sentinel; selections are kept as they are
        and left for the backend to validate.
        """
        block._ensure_live("edit")
        row = self._row(block, row_key)
        target = _reference(reference)

        if isinstance(block, PhaseBlock):
            row.conditional_phase_id = target
            logger.debug("condition_reference_changed", block=block.key, target=target,
                         temporal=is_sentinel(target))
            others = [p for p in self.root.store.phase_list() if p.key != block.key]
            return render_phase_condition(row, others)

        if target is not None and target < 0:
            raise ValueError("Activity conditions cannot reference event sentinels")
        row.conditional_phase_activity_id = target
        siblings = [a for a in self.root.store.activities_of(block.phase.key) if a.key != block.key]
        return render_activity_condition(row, siblings)

    def edit_condition(
        self,
        block: BlockController,
        row_key: str,
        *,
        condition: Any = None,
        operator: Any = None,
    ) -> PhaseCondition | ActivityCondition:
        """Set the predicate / operator of a row; blank values clear them."""
        block._ensure_live("edit")
        row = self._row(block, row_key)
        predicates = PhasePredicate if isinstance(block, PhaseBlock) else ActivityPredicate
        row.condition = predicates(condition) if condition else None
        if operator:
            op = ConditionOperator(operator)
            if isinstance(block, ActivityBlock) and op.is_temporal:
                raise ValueError(f"Operator {op.value} is not available on activity conditions")
            row.operator = op
        else:
            row.operator = None
        return row
