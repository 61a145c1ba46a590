"""Registry of the action kinds a workflow node can perform."""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from ..conditions import evaluate_condition
from ..context import RunContext
from ..graph import Node
from . import crm, messaging, webhook
from .base import ActionEnv, ActionHandler


def _condition(node: Node, context: RunContext, env: ActionEnv) -> dict[str, Any]:
    return evaluate_condition(node.config, context.as_dict())


@dataclass(frozen=True)
class ActionSpec:
    """Metadata describing a built-in action kind."""

    kind: str
    handler: ActionHandler
    description: str


_ACTIONS: list[ActionSpec] = [
    ActionSpec("send_email", messaging.send_email, "Send a templated e-mail to the contact."),
    ActionSpec("send_sms", messaging.send_sms, "Send a templated SMS to the contact."),
    ActionSpec("create_task", crm.create_task, "Create a follow-up task."),
    ActionSpec("create_lead", crm.create_lead, "Create or update a lead from the event payload."),
    ActionSpec("update_contact", crm.update_contact, "Update fields of the run's contact."),
    ActionSpec("move_pipeline_stage", crm.move_pipeline_stage, "Move a lead to another stage."),
    ActionSpec("add_tag", crm.add_tag, "Add a tag to the contact."),
    ActionSpec("remove_tag", crm.remove_tag, "Remove a tag from the contact."),
    ActionSpec("webhook", webhook.call_webhook, "Call an external HTTP endpoint."),
    ActionSpec("condition", _condition, "Evaluate a predicate and pick the yes/no branch."),
]

ACTION_HANDLERS: dict[str, ActionHandler] = {spec.kind: spec.handler for spec in _ACTIONS}


def iter_actions() -> Iterable[ActionSpec]:
    """Yield the registered actions."""

    yield from _ACTIONS


def find_action(kind: str | None) -> ActionSpec | None:
    """Return an action by kind, if available."""

    for spec in _ACTIONS:
        if spec.kind == kind:
            return spec
    return None


__all__ = [
    "ACTION_HANDLERS",
    "ActionEnv",
    "ActionHandler",
    "ActionSpec",
    "find_action",
    "iter_actions",
]
