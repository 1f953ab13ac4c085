"""
Campaign Builder - Models & Schemas Tests
==========================================

Domain records, enums and the wire payloads built from them.
"""

from campaign_builder.core.models import (
    ActivityCondition,
    ActivityPredicate,
    ConditionalAction,
    ConditionalStatus,
    ConditionOperator,
    PaletteItem,
    Phase,
    PhaseActivity,
    PhaseCondition,
    PhasePredicate,
    Sentinel,
    is_sentinel,
)
from campaign_builder.core.schemas import (
    ErrorResponse,
    PhaseActivitySavePayload,
    PhaseRecord,
    PhaseSavePayload,
)


# ==========================================================================
# Enum Tests
# ==========================================================================

class TestEnums:
    """Wire values and predicate metadata."""

    def test_wire_values_carry_backend_prefix(self):
        assert ConditionalAction.LOCK.value == "is_lock"
        assert ConditionalAction.UNLOCK.value == "is_unlock"
        assert [s.value for s in ConditionalStatus] == ["is_all", "is_any", "is_none"]

    def test_sentinels(self):
        assert int(Sentinel.EVENT_START) == -1
        assert int(Sentinel.EVENT_END) == -2
        assert is_sentinel(-1)
        assert is_sentinel(-2)
        assert not is_sentinel(10)
        assert not is_sentinel(None)

    def test_temporal_offsets(self):
        assert PhasePredicate.DAY_OF.offset_days == 0
        assert PhasePredicate.ONE_BEFORE.offset_days == 1
        assert PhasePredicate.SEVEN_BEFORE.offset_days == 7
        assert PhasePredicate.THREE_PAST.offset_days == -3
        assert PhasePredicate.COMPLETE.offset_days is None

    def test_temporal_split(self):
        temporal = [p for p in PhasePredicate if p.is_temporal]
        status = [p for p in PhasePredicate if not p.is_temporal]
        assert len(temporal) == 15
        assert {p.value for p in status} == {"complete", "locked", "empty", "approved", "rejected"}

    def test_operator_split(self):
        assert not ConditionOperator.IS.is_temporal
        assert not ConditionOperator.IS_NOT.is_temporal
        assert ConditionOperator.LESS_THAN.is_temporal
        assert ConditionOperator.GREATER_THAN.is_temporal
        assert ConditionOperator.EQUALS.is_temporal

    def test_activity_predicates_include_unlocked(self):
        assert ActivityPredicate("unlocked") == ActivityPredicate.UNLOCKED


# ==========================================================================
# Record Tests
# ==========================================================================

class TestRecords:
    """Saved-state and identity helpers."""

    def test_phase_defaults(self):
        phase = Phase()
        assert phase.name == "Untitled"
        assert phase.order == 1
        assert phase.conditional_action == ConditionalAction.LOCK
        assert phase.conditional_status == ConditionalStatus.ALL
        assert not phase.is_saved
        phase.id = 5
        assert phase.is_saved

    def test_keys_are_unique(self):
        assert Phase().key != Phase().key

    def test_activity_identity(self):
        activity = PhaseActivity("module", 1)
        assert activity.identity == ("module", 1)
        assert PaletteItem("module", 1, "Expenses").identity == activity.identity

    def test_module_identifiers(self):
        assert PhaseActivity("module", 1).identifier == "expenses"
        assert PhaseActivity("module", 2).identifier == "media"
        assert PhaseActivity("module", 8).identifier == "attendance"
        assert PhaseActivity("module", 99).identifier is None

    def test_custom_form_identifier(self):
        assert PhaseActivity("custom", 12).identifier == "custom-activity-form-12"

    def test_condition_references_sentinel(self):
        assert PhaseCondition(conditional_phase_id=-2).references_sentinel
        assert not PhaseCondition(conditional_phase_id=10).references_sentinel


# ==========================================================================
# Schema Tests
# ==========================================================================

class TestPayloads:
    """Save payloads sent to the backend."""

    def test_phase_payload(self):
        phase = Phase(
            name="Kickoff",
            description="Start",
            order=2,
            conditional_action=ConditionalAction.UNLOCK,
            conditional_status=ConditionalStatus.ANY,
            conditions=[
                PhaseCondition(
                    id=7,
                    conditional_phase_id=-1,
                    condition=PhasePredicate.DAY_OF,
                    operator=ConditionOperator.EQUALS,
                ),
                PhaseCondition(),
            ],
        )
        wire = PhaseSavePayload.from_model(phase).to_wire()

        assert wire["phase"] == {
            "name": "Kickoff",
            "description": "Start",
            "requires_approval": False,
            "order": 2,
            "conditional_action": "is_unlock",
            "conditional_status": "is_any",
        }
        assert wire["phase_conditions"][0] == {
            "id": 7,
            "conditional_phase_id": -1,
            "condition": "day_of",
            "operator": "equals",
        }
        # Unsaved rows go without an id; empty rows keep null fields
        assert wire["phase_conditions"][1] == {
            "conditional_phase_id": None,
            "condition": None,
            "operator": None,
        }

    def test_activity_payload(self):
        activity = PhaseActivity(
            "module",
            1,
            display_name="Expenses",
            due_date="",
            order=3,
            conditions=[
                ActivityCondition(
                    conditional_phase_activity_id=44,
                    condition=ActivityPredicate.COMPLETE,
                    operator=ConditionOperator.IS,
                )
            ],
        )
        wire = PhaseActivitySavePayload.from_model(activity).to_wire()

        assert wire["phase_activity"]["activity_type"] == "module"
        assert wire["phase_activity"]["activity_id"] == 1
        assert wire["phase_activity"]["order"] == 3
        assert wire["phase_activity"]["due_date"] is None
        assert wire["phase_activity"]["conditional_status"] == "is_all"
        assert wire["phase_activity_conditions"] == [
            {"conditional_phase_activity_id": 44, "condition": "complete", "operator": "is"}
        ]


class TestRecordsFromWire:
    """Backend records parsed into domain models."""

    def test_phase_record_to_model(self):
        record = PhaseRecord.model_validate({
            "id": 20,
            "name": "Wrap-up",
            "description": None,
            "order": 2,
            "conditional_action": "is_unlock",
            "conditional_status": "is_none",
            "phase_conditions": [
                {"id": 3, "conditional_phase_id": -2, "condition": "three_before", "operator": "equals"}
            ],
            "phase_activities": [
                {"id": 31, "activity_type": "module", "activity_id": 2, "display_name": "Media", "order": 1}
            ],
        })
        phase = record.to_model()

        assert phase.id == 20
        assert phase.description == ""
        assert phase.conditional_action == ConditionalAction.UNLOCK
        assert phase.conditional_status == ConditionalStatus.NONE
        assert phase.conditions[0].condition == PhasePredicate.THREE_BEFORE
        assert phase.conditions[0].operator == ConditionOperator.EQUALS

        activity = record.phase_activities[0].to_model()
        assert activity.id == 31
        assert activity.identifier == "media"

    def test_missing_enums_fall_back_to_defaults(self):
        phase = PhaseRecord.model_validate({"id": 1, "name": "P"}).to_model()
        assert phase.conditional_action == ConditionalAction.LOCK
        assert phase.conditional_status == ConditionalStatus.ALL
        assert phase.order == 1


class TestErrorResponse:
    """Server validation messages."""

    def test_error_string(self):
        assert ErrorResponse(error="Phase not found").describe() == "Phase not found"

    def test_field_errors(self):
        error = ErrorResponse(errors={"name": ["can't be blank"], "order": ["is invalid"]})
        assert error.describe() == "name can't be blank; order is invalid"

    def test_empty(self):
        assert ErrorResponse().describe() is None
