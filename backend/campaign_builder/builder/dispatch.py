"""
Builder Dispatch - trigger table and user prompts.

Each BuilderRoot owns one HandlerRegistry mapping UI triggers (add/save/
cancel/delete per block, add/remove per condition row, drag/drop) to its
own handlers. The table is inspectable, so a view layer can wire exactly
the triggers that exist and tests can fire them by name.
"""

import inspect
from enum import Enum
from typing import Any, Callable, Protocol

import structlog

logger = structlog.get_logger()


class Prompter(Protocol):
    """Blocking user interaction the builder needs."""

    def confirm(self, message: str) -> bool: ...

    def alert(self, message: str) -> None: ...


class Trigger(str, Enum):
    """UI triggers handled by the builder"""
    # Phase
    ADD_PHASE = "phase.add"
    EDIT_PHASE = "phase.edit"
    SAVE_PHASE = "phase.save"
    CANCEL_PHASE = "phase.cancel"
    DELETE_PHASE = "phase.delete"
    ADD_PHASE_CONDITION = "phase.condition.add"
    REMOVE_PHASE_CONDITION = "phase.condition.remove"
    PHASE_REFERENCE_CHANGE = "phase.condition.reference"

    # Activity
    EDIT_ACTIVITY = "activity.edit"
    SAVE_ACTIVITY = "activity.save"
    CANCEL_ACTIVITY = "activity.cancel"
    DELETE_ACTIVITY = "activity.delete"
    ADD_ACTIVITY_CONDITION = "activity.condition.add"
    REMOVE_ACTIVITY_CONDITION = "activity.condition.remove"
    ACTIVITY_REFERENCE_CHANGE = "activity.condition.reference"
    ADD_GOAL = "activity.goal.add"
    REMOVE_GOAL = "activity.goal.remove"

    # Any block
    TOGGLE_BLOCK = "block.toggle"
    SELECT_TAB = "block.tab"
    EDIT_CONDITION = "condition.edit"

    # Drag & drop
    SORT_PHASES = "phases.sort"
    SORT_ACTIVITIES = "activities.sort"
    RECEIVE_ACTIVITY = "activities.receive"
    DROP_ACTIVITY = "activities.drop"


Handler = Callable[..., Any]


class HandlerRegistry:
    """Per-instance trigger → handler table."""

    def __init__(self):
        self._handlers: dict[Trigger, Handler] = {}

    def register(self, trigger: Trigger, handler: Handler) -> None:
        if trigger in self._handlers:
            raise ValueError(f"Handler already registered for {trigger.value}")
        self._handlers[trigger] = handler

    def unregister(self, trigger: Trigger) -> None:
        self._handlers.pop(trigger, None)

    def handler_for(self, trigger: Trigger) -> Handler:
        try:
            return self._handlers[trigger]
        except KeyError:
            raise ValueError(f"No handler registered for {trigger.value}") from None

    @property
    def triggers(self) -> list[Trigger]:
        return list(self._handlers)

    def __contains__(self, trigger: Trigger) -> bool:
        return trigger in self._handlers

    async def dispatch(self, trigger: Trigger | str, **kwargs: Any) -> Any:
        """Run the handler for a trigger, awaiting it when it is a coroutine."""
        trigger = Trigger(trigger)
        handler = self.handler_for(trigger)
        logger.debug("builder_dispatch", trigger=trigger.value, args=sorted(kwargs))
        result = handler(**kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result
