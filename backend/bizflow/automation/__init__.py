"""Automation runtime: graph traversal, gating, scheduling and auditing."""

from .engine import AutomationEngine, InvocationResult, build_engine, plan_next
from .errors import (
    AutomationError,
    GraphValidationError,
    InvalidTransitionError,
    RunNotFoundError,
)
from .events import ingest_event

__all__ = [
    "AutomationEngine",
    "AutomationError",
    "GraphValidationError",
    "InvalidTransitionError",
    "InvocationResult",
    "RunNotFoundError",
    "build_engine",
    "ingest_event",
    "plan_next",
]
