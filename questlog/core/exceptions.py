"""Errors raised by the progression engine.

The API layer maps each one to a status code; nothing in the engine
catches them.
"""
from datetime import date


class ProgressionError(Exception):
    """Base class for progression engine failures."""


class DuplicateCompletion(ProgressionError):
    """The user already has a completion for this calendar day."""

    def __init__(self, user_id: int, day: date):
        self.user_id = user_id
        self.day = day
        super().__init__(f"Task already completed today ({day.isoformat()})")


class CompletionValidationError(ProgressionError):
    """Submitted completion data is malformed or out of range."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")


class StorageFailure(ProgressionError):
    """A database read or write failed while processing a completion."""

    def __init__(self, step: str, cause: Exception):
        self.step = step
        self.cause = cause
        super().__init__(f"Storage failure during {step}: {type(cause).__name__}: {cause}")
