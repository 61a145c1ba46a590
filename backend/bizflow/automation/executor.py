"""Dispatch of workflow nodes to their side-effecting operations."""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..utils.time import format_iso
from .actions import ACTION_HANDLERS, ActionEnv, ActionHandler
from .audit import AuditLogger
from .context import RunContext
from .delays import parse_delay
from .graph import Node


class NodeExecutor:
    """Run one node and return the result fragment merged into the run context."""

    def __init__(
        self,
        handlers: Mapping[str, ActionHandler] | None = None,
        audit: AuditLogger | None = None,
    ):
        self._handlers = dict(ACTION_HANDLERS if handlers is None else handlers)
        self._audit = audit or AuditLogger()

    @property
    def known_kinds(self) -> frozenset[str]:
        return frozenset(self._handlers)

    def execute(self, node: Node, context: RunContext, env: ActionEnv) -> dict[str, Any]:
        if node.type == "trigger":
            return {"triggered": True, "intent": context.get("intent")}

        if node.type == "goal":
            return {"goalReached": True, "label": node.label}

        if node.type == "wait":
            delay = parse_delay(node.config)
            return {
                "waiting": True,
                "delaySeconds": delay.total_seconds(),
                "resumeAt": format_iso(env.now + delay),
            }

        kind = "condition" if node.type == "condition" else node.action_kind
        handler = self._handlers.get(kind or "")
        if handler is None:
            reason = f"Unknown action: {kind}"
            self._audit.warn(env.run_id, node.id, reason)
            return {"skipped": True, "reason": reason}

        return handler(node, context, env)
