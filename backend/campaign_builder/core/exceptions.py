"""
Campaign Builder - Exceptions
==============================
"""

from typing import Any, Optional


class BuilderError(Exception):
    """Base class for builder errors."""


class PersistenceError(BuilderError):
    """A backend call failed or was rejected."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        errors: Optional[Any] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.errors = errors

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class DuplicateActivityError(BuilderError):
    """The same (activity_type, activity_id) is already in the phase."""

    def __init__(self, activity_type: str, activity_id: int):
        super().__init__(
            f"Activity {activity_type}:{activity_id} is already part of this phase"
        )
        self.activity_type = activity_type
        self.activity_id = activity_id
