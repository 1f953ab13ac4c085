"""
Entity Store - in-memory arena of phases and phase activities.

Records are addressed by their stable local key. Ordering lives here as
ordered key lists (one for the phase list, one per phase for its activity
list); views and renumbering read positions from the store.
"""

from typing import Iterator, Optional

from campaign_builder.core.models import Phase, PhaseActivity


def _clamp(index: Optional[int], length: int) -> int:
    if index is None:
        return length
    return max(0, min(index, length))


class EntityStore:
    """
    Arena of Phase / PhaseActivity records for one campaign session.

    Invariants kept here:
    - every activity key appears in exactly one phase's activity list
    - removing a phase removes its activities
    """

    def __init__(self):
        self.phases: dict[str, Phase] = {}
        self.activities: dict[str, PhaseActivity] = {}
        self._phase_order: list[str] = []
        self._activity_order: dict[str, list[str]] = {}
        self._owner: dict[str, str] = {}

    def __contains__(self, key: str) -> bool:
        return key in self.phases or key in self.activities

    # ==================== Phases ====================

    def add_phase(self, phase: Phase, index: Optional[int] = None) -> Phase:
        if phase.key in self.phases:
            raise ValueError(f"Phase {phase.key} is already in the store")
        self.phases[phase.key] = phase
        self._phase_order.insert(_clamp(index, len(self._phase_order)), phase.key)
        self._activity_order[phase.key] = []
        return phase

    def get_phase(self, key: str) -> Phase:
        try:
            return self.phases[key]
        except KeyError:
            raise ValueError(f"Unknown phase {key}") from None

    def find_phase(self, phase_id: int) -> Optional[Phase]:
        for phase in self.phases.values():
            if phase.id == phase_id:
                return phase
        return None

    def phase_list(self) -> list[Phase]:
        return [self.phases[key] for key in self._phase_order]

    def phase_position(self, key: str) -> int:
        return self._phase_order.index(key)

    def move_phase(self, key: str, new_index: int) -> None:
        self.get_phase(key)
        self._phase_order.remove(key)
        self._phase_order.insert(_clamp(new_index, len(self._phase_order)), key)

    def remove_phase(self, key: str) -> tuple[Phase, int]:
        """Drop a phase and its activities; returns (phase, former position)."""
        phase = self.get_phase(key)
        position = self._phase_order.index(key)
        self._phase_order.remove(key)
        for activity_key in self._activity_order.pop(key, []):
            self.activities.pop(activity_key, None)
            self._owner.pop(activity_key, None)
        del self.phases[key]
        return phase, position

    # ==================== Activities ====================

    def add_activity(
        self, phase_key: str, activity: PhaseActivity, index: Optional[int] = None
    ) -> PhaseActivity:
        self.get_phase(phase_key)
        if activity.key in self.activities:
            raise ValueError(f"Activity {activity.key} is already in the store")
        keys = self._activity_order[phase_key]
        keys.insert(_clamp(index, len(keys)), activity.key)
        self.activities[activity.key] = activity
        self._owner[activity.key] = phase_key
        return activity

    def get_activity(self, key: str) -> PhaseActivity:
        try:
            return self.activities[key]
        except KeyError:
            raise ValueError(f"Unknown activity {key}") from None

    def activities_of(self, phase_key: str) -> list[PhaseActivity]:
        return [self.activities[key] for key in self._activity_order.get(phase_key, [])]

    def owner_of(self, activity_key: str) -> Phase:
        try:
            return self.phases[self._owner[activity_key]]
        except KeyError:
            raise ValueError(f"Unknown activity {activity_key}") from None

    def activity_position(self, key: str) -> int:
        return self._activity_order[self._owner[key]].index(key)

    def move_activity(self, key: str, target_phase_key: str, new_index: int) -> str:
        """Move an activity within or across lists; returns the source phase key."""
        self.get_activity(key)
        self.get_phase(target_phase_key)
        source_key = self._owner[key]
        self._activity_order[source_key].remove(key)
        keys = self._activity_order[target_phase_key]
        keys.insert(_clamp(new_index, len(keys)), key)
        self._owner[key] = target_phase_key
        return source_key

    def remove_activity(self, key: str) -> tuple[PhaseActivity, str, int]:
        """Drop an activity; returns (activity, owning phase key, former position)."""
        activity = self.get_activity(key)
        phase_key = self._owner.pop(key)
        keys = self._activity_order[phase_key]
        position = keys.index(key)
        keys.remove(key)
        del self.activities[key]
        return activity, phase_key, position

    def has_identity(
        self, phase_key: str, identity: tuple[str, int], exclude: Optional[str] = None
    ) -> bool:
        """True if the phase already holds an activity with this (type, id)."""
        return any(
            activity.identity == identity and activity.key != exclude
            for activity in self.activities_of(phase_key)
        )

    def iter_blocks(self) -> Iterator[Phase | PhaseActivity]:
        for phase in self.phase_list():
            yield phase
            yield from self.activities_of(phase.key)
