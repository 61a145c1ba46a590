"""CRM actions. Each one is safe to repeat for the same run and node."""
from __future__ import annotations

from typing import Any

from ..context import RunContext
from ..graph import Node
from .base import ActionEnv


def _source_ref(env: ActionEnv, node: Node) -> str:
    return f"{env.run_id}:{node.id}"


def _contact_id(node: Node, context: RunContext) -> str | None:
    contact_id = context.contact.get("id") or node.config.get("contactId")
    return str(contact_id) if contact_id else None


def create_task(node: Node, context: RunContext, env: ActionEnv) -> dict[str, Any]:
    config = node.config
    title = context.render(config.get("title") or "Follow up")
    description = context.render(config.get("description") or "")
    record = env.collaborators.crm.upsert(
        "task",
        {
            "title": title,
            "description": description,
            "status": "todo",
            "business_id": context.business_id,
            "project_id": context.payload.get("projectId"),
        },
        match={"source_ref": _source_ref(env, node)},
    )
    return {"taskId": record["id"], "title": title}


def create_lead(node: Node, context: RunContext, env: ActionEnv) -> dict[str, Any]:
    email = context.payload.get("email") or context.contact.get("email")
    fields = {
        "name": context.payload.get("name") or context.contact.get("name"),
        "phone": context.payload.get("phone") or context.contact.get("phone"),
        "source": node.config.get("source") or "automation",
        "lead_metadata": {"intent": context.get("intent"), "runId": env.run_id},
    }
    if email:
        match = {"business_id": context.business_id, "email": email}
    else:
        match = {"source_ref": _source_ref(env, node)}
        fields["business_id"] = context.business_id
    record = env.collaborators.crm.upsert("lead", fields, match=match)
    return {"leadId": record["id"]}


def update_contact(node: Node, context: RunContext, env: ActionEnv) -> dict[str, Any]:
    contact_id = _contact_id(node, context)
    if not contact_id:
        return {"updated": False, "reason": "No contact ID"}
    if env.collaborators.crm.fetch("contact", contact_id) is None:
        return {"updated": False, "reason": "Contact not found", "contactId": contact_id}

    config = node.config
    updates: dict[str, Any] = {}
    for key, column in (("firstName", "first_name"), ("lastName", "last_name"), ("phone", "phone")):
        if config.get(key):
            updates[column] = context.render(config[key])
    if isinstance(config.get("tags"), list):
        updates["tags"] = list(config["tags"])

    env.collaborators.crm.upsert("contact", updates, match={"id": contact_id})
    return {"updated": True, "contactId": contact_id, "fields": sorted(updates)}


def move_pipeline_stage(node: Node, context: RunContext, env: ActionEnv) -> dict[str, Any]:
    lead_id = node.config.get("leadId") or context.payload.get("leadId")
    stage = node.config.get("stage")
    if not lead_id or not stage:
        return {"moved": False, "reason": "Missing leadId or stage"}
    if env.collaborators.crm.fetch("lead", str(lead_id)) is None:
        return {"moved": False, "reason": "Lead not found", "leadId": lead_id}

    env.collaborators.crm.upsert("lead", {"status": stage}, match={"id": str(lead_id)})
    return {"moved": True, "leadId": lead_id, "stage": stage}


def _change_tags(
    node: Node, context: RunContext, env: ActionEnv, *, add: bool
) -> dict[str, Any]:
    verb = "added" if add else "removed"
    contact_id = _contact_id(node, context)
    tag = node.config.get("tag")
    if not contact_id or not tag:
        return {verb: False, "reason": "Missing contactId or tag"}

    contact = env.collaborators.crm.fetch("contact", contact_id)
    if contact is None:
        return {verb: False, "reason": "Contact not found", "contactId": contact_id}

    current = list(contact.get("tags") or [])
    if add:
        tags = current if tag in current else [*current, tag]
    else:
        tags = [existing for existing in current if existing != tag]
    if tags != current:
        env.collaborators.crm.upsert("contact", {"tags": tags}, match={"id": contact_id})
    return {verb: True, "contactId": contact_id, "tag": tag}


def add_tag(node: Node, context: RunContext, env: ActionEnv) -> dict[str, Any]:
    return _change_tags(node, context, env, add=True)


def remove_tag(node: Node, context: RunContext, env: ActionEnv) -> dict[str, Any]:
    return _change_tags(node, context, env, add=False)
