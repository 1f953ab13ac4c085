"""
Template Renderer - records to typed view models.

Every function here is pure: it reads the records (and the explicit UI
state passed in) and returns dataclass views. Nothing is cached and no
shared state is touched, so views can be rebuilt after every change.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from campaign_builder.core.config import settings
from campaign_builder.core.models import (
    ACTIVITY_OPERATORS,
    MODULE_ACTIVITY_TYPE,
    ActivityCondition,
    ActivityGoal,
    ActivityPredicate,
    BlockTab,
    ConditionalAction,
    ConditionalStatus,
    ConditionOperator,
    GoalOperation,
    Phase,
    PhaseActivity,
    PhaseCondition,
    PhasePredicate,
    Sentinel,
    is_sentinel,
)

SELECT_ONE = "Select One"

SENTINEL_LABELS = {
    Sentinel.EVENT_START: "[EVENT START]",
    Sentinel.EVENT_END: "[EVENT END]",
}

OPERATOR_LABELS = {
    ConditionOperator.IS: "Is",
    ConditionOperator.IS_NOT: "Is Not",
    ConditionOperator.LESS_THAN: "<",
    ConditionOperator.GREATER_THAN: ">",
    ConditionOperator.EQUALS: "=",
}

STATUS_LABELS = {
    "complete": "Complete",
    "locked": "Locked",
    "unlocked": "Unlocked",
    "empty": "Not Started / Empty",
    "approved": "Approved",
    "rejected": "Rejected",
}

ACTION_LABELS = {ConditionalAction.LOCK: "Lock", ConditionalAction.UNLOCK: "Unlock"}
AGGREGATION_LABELS = {
    ConditionalStatus.ALL: "All",
    ConditionalStatus.ANY: "Any",
    ConditionalStatus.NONE: "None",
}

GOAL_OPERATION_LABELS = {GoalOperation.COUNT: "Count", GoalOperation.VALUE: "Value"}


def temporal_label(predicate: PhasePredicate) -> str:
    days = predicate.offset_days
    if days == 0:
        return "The day of"
    unit = "day" if abs(days) == 1 else "days"
    direction = "before" if days > 0 else "past"
    return f"{abs(days)} {unit} {direction}"


# ==========================================================================
# View Models
# ==========================================================================

@dataclass
class OptionView:
    value: Optional[str]
    label: str
    enabled: bool = True
    selected: bool = False


@dataclass
class SelectView:
    name: str
    options: list[OptionView]

    @property
    def selected_value(self) -> Optional[str]:
        for option in self.options:
            if option.selected:
                return option.value
        return None

    @property
    def enabled_values(self) -> list[str]:
        return [o.value for o in self.options if o.enabled and o.value is not None]

    @property
    def disabled_values(self) -> list[str]:
        return [o.value for o in self.options if not o.enabled and o.value is not None]


@dataclass
class ConditionRowView:
    key: str
    id: Optional[int]
    reference: SelectView
    operator: SelectView
    condition: SelectView
    temporal: bool = False


@dataclass
class LogicPanelView:
    visible: bool
    action: SelectView
    status: SelectView
    rows: list[ConditionRowView] = field(default_factory=list)


@dataclass
class SettingsFieldView:
    name: str
    label: str
    kind: str  # text | checkbox | date
    value: Any = None


@dataclass
class GoalRowView:
    key: str
    kpi: Optional[str]
    operation: SelectView
    field_name: Optional[str]


@dataclass
class ActivityBlockView:
    key: str
    id: Optional[int]
    counter: int
    title: str
    closed: bool
    activity_type: str
    activity_id: int
    identifier: Optional[str]
    active_tab: BlockTab
    tabs: list[BlockTab]
    settings: list[SettingsFieldView]
    logic: LogicPanelView
    goals: list[GoalRowView]

    @property
    def info_visible(self) -> bool:
        return not self.closed


@dataclass
class PhaseBlockView:
    key: str
    id: Optional[int]
    counter: int
    title: str
    closed: bool
    name: str
    description: str
    requires_approval: bool
    select_name_on_focus: bool
    active_tab: BlockTab
    tabs: list[BlockTab]
    logic: LogicPanelView
    activities_visible: bool
    activities: list[ActivityBlockView] = field(default_factory=list)

    @property
    def info_visible(self) -> bool:
        return not self.closed

    @property
    def drop_zone_visible(self) -> bool:
        return self.activities_visible


# ==========================================================================
# Selects
# ==========================================================================

def _select(name: str, choices: Iterable[tuple[str, str, bool]], selected: Optional[str]) -> SelectView:
    options = [OptionView(value=None, label=SELECT_ONE, selected=selected is None)]
    for value, label, enabled in choices:
        options.append(OptionView(value=value, label=label, enabled=enabled, selected=value == selected))
    return SelectView(name=name, options=options)


def _value(member: Any) -> Optional[str]:
    if member is None:
        return None
    return member.value if hasattr(member, "value") else str(member)


def _action_select(action: ConditionalAction) -> SelectView:
    options = [
        OptionView(value=a.value, label=ACTION_LABELS[a], selected=a == action)
        for a in ConditionalAction
    ]
    return SelectView(name="action", options=options)


def _status_select(status: ConditionalStatus) -> SelectView:
    options = [
        OptionView(value=s.value, label=AGGREGATION_LABELS[s], selected=s == status)
        for s in ConditionalStatus
    ]
    return SelectView(name="status", options=options)


# ==========================================================================
# Condition Rows
# ==========================================================================

def render_phase_condition(condition: PhaseCondition, phases: Iterable[Phase]) -> ConditionRowView:
    """Phase rule row. Temporal options are enabled only for sentinel targets."""
    temporal = is_sentinel(condition.conditional_phase_id)

    targets = [(str(int(s)), SENTINEL_LABELS[s], True) for s in Sentinel]
    targets += [(str(p.id), p.name, True) for p in phases if p.id is not None]
    reference = _select(
        "phases",
        targets,
        None if condition.conditional_phase_id is None else str(condition.conditional_phase_id),
    )

    operator = _select(
        "operator",
        [(op.value, OPERATOR_LABELS[op], op.is_temporal == temporal) for op in ConditionOperator],
        _value(condition.operator),
    )
    predicate = _select(
        "condition",
        [
            (
                p.value,
                temporal_label(p) if p.is_temporal else STATUS_LABELS[p.value],
                p.is_temporal == temporal,
            )
            for p in PhasePredicate
        ],
        _value(condition.condition),
    )
    return ConditionRowView(
        key=condition.key,
        id=condition.id,
        reference=reference,
        operator=operator,
        condition=predicate,
        temporal=temporal,
    )


def render_activity_condition(
    condition: ActivityCondition, siblings: Iterable[PhaseActivity]
) -> ConditionRowView:
    reference = _select(
        "activities",
        [(str(a.id), a.display_name, True) for a in siblings if a.id is not None],
        None
        if condition.conditional_phase_activity_id is None
        else str(condition.conditional_phase_activity_id),
    )
    operator = _select(
        "operator",
        [(op.value, OPERATOR_LABELS[op], True) for op in ACTIVITY_OPERATORS],
        _value(condition.operator),
    )
    predicate = _select(
        "condition",
        [(p.value, STATUS_LABELS[p.value], True) for p in ActivityPredicate],
        _value(condition.condition),
    )
    return ConditionRowView(
        key=condition.key,
        id=condition.id,
        reference=reference,
        operator=operator,
        condition=predicate,
    )


# ==========================================================================
# Activity Blocks
# ==========================================================================

def _settings_fields(activity: PhaseActivity) -> list[SettingsFieldView]:
    fields = [
        SettingsFieldView("display_name", "Display Name", "text", activity.display_name),
        SettingsFieldView("required", "Required", "checkbox", activity.required),
        SettingsFieldView("due_date", "Due Date", "date", activity.due_date or ""),
    ]
    if activity.activity_type != MODULE_ACTIVITY_TYPE:
        return fields

    extra = activity.settings
    if activity.identifier in ("expenses", "media", "comments"):
        fields += [
            SettingsFieldView("min", "Min", "text", extra.get("min")),
            SettingsFieldView("max", "Max", "text", extra.get("max")),
        ]
    if activity.identifier == "expenses":
        fields += [
            SettingsFieldView("receipt_required", "Receipt Required", "checkbox",
                              bool(extra.get("receipt_required"))),
            SettingsFieldView("categories", "Categories", "text", extra.get("categories")),
        ]
    return fields


def render_goal(goal: ActivityGoal) -> GoalRowView:
    operation = _select(
        "operation",
        [(op.value, GOAL_OPERATION_LABELS[op], True) for op in GoalOperation],
        _value(goal.operation),
    )
    return GoalRowView(key=goal.key, kpi=goal.kpi, operation=operation, field_name=goal.field_name)


def render_activity(
    activity: PhaseActivity,
    siblings: Iterable[PhaseActivity] = (),
    *,
    closed: bool = True,
    active_tab: BlockTab = BlockTab.SETTINGS,
) -> ActivityBlockView:
    """Activity block. Condition targets are the saved siblings in the same phase."""
    targets = [a for a in siblings if a.key != activity.key]
    return ActivityBlockView(
        key=activity.key,
        id=activity.id,
        counter=activity.order,
        title=activity.display_name,
        closed=closed,
        activity_type=activity.activity_type,
        activity_id=activity.activity_id,
        identifier=activity.identifier,
        active_tab=active_tab,
        tabs=[BlockTab.SETTINGS, BlockTab.LOGIC, BlockTab.GOALS],
        settings=_settings_fields(activity),
        logic=LogicPanelView(
            visible=bool(activity.conditions),
            action=_action_select(activity.conditional_action),
            status=_status_select(activity.conditional_status),
            rows=[render_activity_condition(c, targets) for c in activity.conditions],
        ),
        goals=[render_goal(g) for g in activity.goals],
    )


# ==========================================================================
# Phase Blocks
# ==========================================================================

def render_phase(
    phase: Phase,
    activities: Iterable[PhaseActivity] = (),
    all_phases: Iterable[Phase] = (),
    *,
    closed: bool = True,
    active_tab: BlockTab = BlockTab.SETTINGS,
    activity_state: Optional[dict[str, tuple[bool, BlockTab]]] = None,
) -> PhaseBlockView:
    """
    Phase block with its nested activity blocks.

    activity_state maps activity keys to (closed, active_tab); activities
    missing from it render closed on the settings tab. The activity list and
    drop zone are only visible once the phase has an id.
    """
    activities = list(activities)
    activity_state = activity_state or {}
    targets = [p for p in all_phases if p.key != phase.key]

    activity_views = []
    for activity in activities:
        a_closed, a_tab = activity_state.get(activity.key, (True, BlockTab.SETTINGS))
        activity_views.append(
            render_activity(activity, activities, closed=a_closed, active_tab=a_tab)
        )

    return PhaseBlockView(
        key=phase.key,
        id=phase.id,
        counter=phase.order,
        title=phase.name,
        closed=closed,
        name=phase.name,
        description=phase.description or "",
        requires_approval=phase.requires_approval,
        select_name_on_focus=phase.name == settings.DEFAULT_PHASE_NAME,
        active_tab=active_tab,
        tabs=[BlockTab.SETTINGS, BlockTab.LOGIC],
        logic=LogicPanelView(
            visible=bool(phase.conditions),
            action=_action_select(phase.conditional_action),
            status=_status_select(phase.conditional_status),
            rows=[render_phase_condition(c, targets) for c in phase.conditions],
        ),
        activities_visible=phase.is_saved,
        activities=activity_views if phase.is_saved else [],
    )
