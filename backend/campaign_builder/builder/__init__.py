"""
Campaign Builder - Builder Engine
==================================

Blocks, ordering, drag & drop admission and persistence sync.
"""

from .blocks import (
    ActivityBlock,
    BlockController,
    PhaseBlock,
)
from .client import (
    PersistenceClient,
    auth_headers,
)
from .conditions import ConditionEditor
from .dispatch import (
    HandlerRegistry,
    Prompter,
    Trigger,
)
from .dragdrop import (
    DUPLICATE_ACTIVITY_MESSAGE,
    DragDropCoordinator,
    DropOutcome,
    DropResult,
)
from .renumber import (
    RenumberReport,
    RenumberSync,
)
from .root import BuilderRoot
from .store import EntityStore

__all__ = [
    "ActivityBlock",
    "BlockController",
    "BuilderRoot",
    "ConditionEditor",
    "DUPLICATE_ACTIVITY_MESSAGE",
    "DragDropCoordinator",
    "DropOutcome",
    "DropResult",
    "EntityStore",
    "HandlerRegistry",
    "PersistenceClient",
    "Prompter",
    "RenumberReport",
    "RenumberSync",
    "Trigger",
    "auth_headers",
]
