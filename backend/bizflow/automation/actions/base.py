"""Shared types for action handlers."""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ...models.settings import BusinessAutomationSettings
from ..collaborators import Collaborators
from ..context import RunContext
from ..graph import Node


@dataclass(frozen=True)
class ActionEnv:
    """Everything an action may use besides the node and the run context."""

    collaborators: Collaborators
    settings: BusinessAutomationSettings | None
    run_id: str
    now: datetime
    idempotency_key: str | None = None


ActionHandler = Callable[[Node, RunContext, ActionEnv], dict[str, Any]]
