"""
Campaign Builder - Domain Models
=================================

In-memory records for phases, phase activities and their conditional rules.
Records are keyed by a stable local key; the backend `id` is only set once a
save round-trip has succeeded and is the single "is this saved?" signal.
"""

import enum
from dataclasses import dataclass, field
from typing import Any, Optional
from uuid import uuid4


def new_key() -> str:
    """Stable local key for a record that may not have a backend id yet."""
    return uuid4().hex


# ==========================================================================
# Enums
# ==========================================================================

class ConditionalAction(str, enum.Enum):
    """What a satisfied rule set does to its block.

    Wire values carry the backend's "is_" prefix (lock/all/none are reserved
    words on the server side).
    """
    LOCK = "is_lock"
    UNLOCK = "is_unlock"


class ConditionalStatus(str, enum.Enum):
    """How a block's own condition list is aggregated."""
    ALL = "is_all"
    ANY = "is_any"
    NONE = "is_none"


class Sentinel(enum.IntEnum):
    """Reserved phase references that point at the event itself."""
    EVENT_START = -1
    EVENT_END = -2


SENTINEL_IDS = frozenset(int(s) for s in Sentinel)


def is_sentinel(reference: Optional[int]) -> bool:
    return reference is not None and reference in SENTINEL_IDS


class PhasePredicate(str, enum.Enum):
    """Condition values a PhaseCondition may hold."""
    # Status predicates (concrete phase references)
    COMPLETE = "complete"
    LOCKED = "locked"
    EMPTY = "empty"
    APPROVED = "approved"
    REJECTED = "rejected"

    # Temporal predicates (sentinel references only)
    DAY_OF = "day_of"
    ONE_BEFORE = "one_before"
    TWO_BEFORE = "two_before"
    THREE_BEFORE = "three_before"
    FOUR_BEFORE = "four_before"
    FIVE_BEFORE = "five_before"
    SIX_BEFORE = "six_before"
    SEVEN_BEFORE = "seven_before"
    ONE_PAST = "one_past"
    TWO_PAST = "two_past"
    THREE_PAST = "three_past"
    FOUR_PAST = "four_past"
    FIVE_PAST = "five_past"
    SIX_PAST = "six_past"
    SEVEN_PAST = "seven_past"

    @property
    def is_temporal(self) -> bool:
        return self.value in TEMPORAL_OFFSETS

    @property
    def offset_days(self) -> Optional[int]:
        """Days relative to the event boundary (positive = before)."""
        return TEMPORAL_OFFSETS.get(self.value)


_NUMBER_WORDS = ["one", "two", "three", "four", "five", "six", "seven"]

TEMPORAL_OFFSETS: dict[str, int] = {"day_of": 0}
for _days, _word in enumerate(_NUMBER_WORDS, start=1):
    TEMPORAL_OFFSETS[f"{_word}_before"] = _days
    TEMPORAL_OFFSETS[f"{_word}_past"] = -_days


class ActivityPredicate(str, enum.Enum):
    """Condition values an ActivityCondition may hold."""
    COMPLETE = "complete"
    LOCKED = "locked"
    UNLOCKED = "unlocked"
    EMPTY = "empty"
    APPROVED = "approved"
    REJECTED = "rejected"


class ConditionOperator(str, enum.Enum):
    IS = "is"
    IS_NOT = "is_not"
    LESS_THAN = "less_than"        # sentinel only
    GREATER_THAN = "greater_than"  # sentinel only
    EQUALS = "equals"              # sentinel only

    @property
    def is_temporal(self) -> bool:
        return self not in (ConditionOperator.IS, ConditionOperator.IS_NOT)


ACTIVITY_OPERATORS = (ConditionOperator.IS, ConditionOperator.IS_NOT)


class BlockKind(str, enum.Enum):
    PHASE = "phase"
    ACTIVITY = "activity"


class BlockState(str, enum.Enum):
    """Lifecycle of a builder block."""
    UNSAVED_OPEN = "unsaved_open"
    SAVED_OPEN = "saved_open"
    SAVED_CLOSED = "saved_closed"
    REMOVED = "removed"


class BlockTab(str, enum.Enum):
    SETTINGS = "settings"
    LOGIC = "logic"
    GOALS = "goals"  # activities only


class GoalOperation(str, enum.Enum):
    COUNT = "count"
    VALUE = "value"


# Module activity ids map onto these identifiers; index 0 is unused.
MODULE_IDENTIFIERS = [
    None, "expenses", "media", "surveys", "comments",
    "tasks", "contacts", "documents", "attendance",
]

MODULE_ACTIVITY_TYPE = "module"


# ==========================================================================
# Conditions
# ==========================================================================

@dataclass
class PhaseCondition:
    """A rule row on a phase, pointing at another phase or a sentinel."""
    key: str = field(default_factory=new_key)
    id: Optional[int] = None
    conditional_phase_id: Optional[int] = None
    condition: Optional[PhasePredicate] = None
    operator: Optional[ConditionOperator] = None

    @property
    def references_sentinel(self) -> bool:
        return is_sentinel(self.conditional_phase_id)


@dataclass
class ActivityCondition:
    """A rule row on an activity, pointing at a sibling activity."""
    key: str = field(default_factory=new_key)
    id: Optional[int] = None
    conditional_phase_activity_id: Optional[int] = None
    condition: Optional[ActivityPredicate] = None
    operator: Optional[ConditionOperator] = None


@dataclass
class ActivityGoal:
    """Client-side goal row (KPI = operation of field). Not persisted."""
    key: str = field(default_factory=new_key)
    kpi: Optional[str] = None
    operation: Optional[GoalOperation] = None
    field_name: Optional[str] = None


# ==========================================================================
# Blocks
# ==========================================================================

@dataclass
class Phase:
    key: str = field(default_factory=new_key)
    id: Optional[int] = None
    name: str = "Untitled"
    description: str = ""
    requires_approval: bool = False
    order: int = 1
    conditional_action: ConditionalAction = ConditionalAction.LOCK
    conditional_status: ConditionalStatus = ConditionalStatus.ALL
    conditions: list[PhaseCondition] = field(default_factory=list)

    @property
    def is_saved(self) -> bool:
        return self.id is not None


@dataclass
class PhaseActivity:
    """An activity definition bound into a phase."""
    activity_type: str
    activity_id: int
    key: str = field(default_factory=new_key)
    id: Optional[int] = None
    display_name: str = ""
    due_date: Optional[str] = None
    required: bool = False
    order: int = 1
    conditional_action: ConditionalAction = ConditionalAction.LOCK
    conditional_status: ConditionalStatus = ConditionalStatus.ALL
    conditions: list[ActivityCondition] = field(default_factory=list)
    goals: list[ActivityGoal] = field(default_factory=list)
    # Module-specific extras (min/max, categories, ...); client-side only
    settings: dict[str, Any] = field(default_factory=dict)

    @property
    def is_saved(self) -> bool:
        return self.id is not None

    @property
    def identity(self) -> tuple[str, int]:
        return (self.activity_type, self.activity_id)

    @property
    def identifier(self) -> Optional[str]:
        """Slug of the underlying activity definition."""
        if self.activity_type == MODULE_ACTIVITY_TYPE:
            if 0 < self.activity_id < len(MODULE_IDENTIFIERS):
                return MODULE_IDENTIFIERS[self.activity_id]
            return None
        return f"custom-activity-form-{self.activity_id}"


@dataclass(frozen=True)
class PaletteItem:
    """A drag source offered by the activity palette."""
    activity_type: str
    activity_id: int
    display_name: str

    @property
    def identity(self) -> tuple[str, int]:
        return (self.activity_type, self.activity_id)
