"""Exceptions raised by the automation runtime."""

from __future__ import annotations


class AutomationError(Exception):
    """Base class for automation runtime errors."""


class GraphValidationError(AutomationError):
    """Raised when a workflow graph violates its structural invariants."""

    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


class InvalidTransitionError(AutomationError):
    """Raised when a run status change is not allowed by the state machine."""


class RunNotFoundError(AutomationError):
    """Raised when an invocation references an unknown run."""
