"""
Campaign Builder - Pydantic Schemas
====================================

Wire schemas for the campaign phases REST API.
Records describe what the backend returns; payloads describe what the
builder sends on save.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from campaign_builder.core.models import (
    ActivityCondition,
    ActivityPredicate,
    ConditionalAction,
    ConditionalStatus,
    ConditionOperator,
    Phase,
    PhaseActivity,
    PhaseCondition,
    PhasePredicate,
)


# ==========================================================================
# Base Schemas
# ==========================================================================

class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


def _condition_rows(rows: list[BaseModel]) -> list[dict[str, Any]]:
    """Dump condition rows, leaving `id` out until the row is persisted."""
    dumped = []
    for row in rows:
        data = row.model_dump(mode="json")
        if data.get("id") is None:
            data.pop("id", None)
        dumped.append(data)
    return dumped


# ==========================================================================
# Condition Schemas
# ==========================================================================

class PhaseConditionRecord(BaseSchema):
    """A phase condition as stored by the backend."""

    id: Optional[int] = None
    conditional_phase_id: Optional[int] = None
    condition: Optional[PhasePredicate] = None
    operator: Optional[ConditionOperator] = None

    def to_model(self) -> PhaseCondition:
        return PhaseCondition(
            id=self.id,
            conditional_phase_id=self.conditional_phase_id,
            condition=self.condition,
            operator=self.operator,
        )


class ActivityConditionRecord(BaseSchema):
    """A phase activity condition as stored by the backend."""

    id: Optional[int] = None
    conditional_phase_activity_id: Optional[int] = None
    condition: Optional[ActivityPredicate] = None
    operator: Optional[ConditionOperator] = None

    def to_model(self) -> ActivityCondition:
        return ActivityCondition(
            id=self.id,
            conditional_phase_activity_id=self.conditional_phase_activity_id,
            condition=self.condition,
            operator=self.operator,
        )


# ==========================================================================
# Phase Activity Schemas
# ==========================================================================

class PhaseActivityRecord(BaseSchema):
    """A phase activity as listed under its phase."""

    id: int
    display_name: Optional[str] = None
    due_date: Optional[str] = None
    required: bool = False
    activity_type: str
    activity_id: int
    order: Optional[int] = None
    conditional_action: Optional[ConditionalAction] = None
    conditional_status: Optional[ConditionalStatus] = None
    phase_activity_conditions: list[ActivityConditionRecord] = Field(default_factory=list)

    def to_model(self) -> PhaseActivity:
        return PhaseActivity(
            id=self.id,
            activity_type=self.activity_type,
            activity_id=self.activity_id,
            display_name=self.display_name or "",
            due_date=self.due_date,
            required=self.required,
            order=self.order or 1,
            conditional_action=self.conditional_action or ConditionalAction.LOCK,
            conditional_status=self.conditional_status or ConditionalStatus.ALL,
            conditions=[c.to_model() for c in self.phase_activity_conditions],
        )


class PhaseActivityFields(BaseSchema):
    display_name: str = ""
    due_date: Optional[str] = None
    required: bool = False
    activity_type: str
    activity_id: int
    order: int
    conditional_action: ConditionalAction
    conditional_status: ConditionalStatus


class PhaseActivitySavePayload(BaseSchema):
    """Body of POST/PUT .../phase_activities[/{id}].json"""

    phase_activity: PhaseActivityFields
    phase_activity_conditions: list[ActivityConditionRecord] = Field(default_factory=list)

    @classmethod
    def from_model(cls, activity: PhaseActivity) -> "PhaseActivitySavePayload":
        return cls(
            phase_activity=PhaseActivityFields(
                display_name=activity.display_name,
                due_date=activity.due_date or None,
                required=activity.required,
                activity_type=activity.activity_type,
                activity_id=activity.activity_id,
                order=activity.order,
                conditional_action=activity.conditional_action,
                conditional_status=activity.conditional_status,
            ),
            phase_activity_conditions=[
                ActivityConditionRecord.model_validate(c) for c in activity.conditions
            ],
        )

    def to_wire(self) -> dict[str, Any]:
        return {
            "phase_activity": self.phase_activity.model_dump(mode="json"),
            "phase_activity_conditions": _condition_rows(self.phase_activity_conditions),
        }


class PhaseActivitySaveResponse(BaseSchema):
    """Create/update answer; only `id` is guaranteed."""

    id: int
    phase_activity_conditions: list[ActivityConditionRecord] = Field(default_factory=list)


# ==========================================================================
# Phase Schemas
# ==========================================================================

class PhaseRecord(BaseSchema):
    """A phase as returned by GET /phases.json"""

    id: int
    name: str = "Untitled"
    description: Optional[str] = None
    requires_approval: bool = False
    order: Optional[int] = None
    conditional_action: Optional[ConditionalAction] = None
    conditional_status: Optional[ConditionalStatus] = None
    phase_conditions: list[PhaseConditionRecord] = Field(default_factory=list)
    phase_activities: list[PhaseActivityRecord] = Field(default_factory=list)

    def to_model(self) -> Phase:
        return Phase(
            id=self.id,
            name=self.name,
            description=self.description or "",
            requires_approval=self.requires_approval,
            order=self.order or 1,
            conditional_action=self.conditional_action or ConditionalAction.LOCK,
            conditional_status=self.conditional_status or ConditionalStatus.ALL,
            conditions=[c.to_model() for c in self.phase_conditions],
        )


class PhaseFields(BaseSchema):
    name: str
    description: str = ""
    requires_approval: bool = False
    order: int
    conditional_action: ConditionalAction
    conditional_status: ConditionalStatus


class PhaseSavePayload(BaseSchema):
    """Body of POST /phases.json and PUT /phases/{id}.json"""

    phase: PhaseFields
    phase_conditions: list[PhaseConditionRecord] = Field(default_factory=list)

    @classmethod
    def from_model(cls, phase: Phase) -> "PhaseSavePayload":
        return cls(
            phase=PhaseFields(
                name=phase.name,
                description=phase.description,
                requires_approval=phase.requires_approval,
                order=phase.order,
                conditional_action=phase.conditional_action,
                conditional_status=phase.conditional_status,
            ),
            phase_conditions=[PhaseConditionRecord.model_validate(c) for c in phase.conditions],
        )

    def to_wire(self) -> dict[str, Any]:
        return {
            "phase": self.phase.model_dump(mode="json"),
            "phase_conditions": _condition_rows(self.phase_conditions),
        }


class PhaseSaveResponse(BaseSchema):
    """Create/update answer; only `id` is guaranteed."""

    id: int
    phase_conditions: list[PhaseConditionRecord] = Field(default_factory=list)


# ==========================================================================
# Common Response Schemas
# ==========================================================================

class ErrorResponse(BaseSchema):
    """Validation error body returned by the backend."""

    error: Optional[str] = None
    errors: Optional[Any] = None
    message: Optional[str] = None

    def describe(self) -> Optional[str]:
        if self.error:
            return self.error
        if self.message:
            return self.message
        if isinstance(self.errors, dict):
            return "; ".join(
                f"{key} {', '.join(map(str, value)) if isinstance(value, list) else value}"
                for key, value in self.errors.items()
            )
        if isinstance(self.errors, list):
            return "; ".join(str(e) for e in self.errors)
        return None
