"""Seed the database with demo automation settings and an example workflow."""
from __future__ import annotations

import pathlib
import sys
import uuid

ROOT = pathlib.Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.bizflow import create_app
from backend.bizflow.extensions import db
from backend.bizflow.models.settings import BusinessAutomationSettings
from backend.bizflow.models.workflow import Workflow, WorkflowEdge, WorkflowNode

DEMO_BUSINESS_ID = "00000000-0000-0000-0000-000000000001"
EXAMPLE_WORKFLOW_NAME = "New Lead Follow-up"
EXAMPLE_INTENT = "lead.created"

# (ref, type, action, label, config)
_NODES = [
    ("trigger", "trigger", None, "Lead created", {}),
    (
        "welcome",
        "action",
        "send_email",
        "Welcome e-mail",
        {
            "subject": "Thanks for reaching out, {{payload.name}}",
            "body": "<p>Hi {{payload.name}}, we will be in touch shortly.</p>",
        },
    ),
    ("wait", "wait", None, "Wait one day", {"duration": "P1D"}),
    (
        "check",
        "condition",
        None,
        "Came from the website?",
        {"field": "payload.source", "operator": "equals", "value": "website"},
    ),
    ("task", "action", "create_task", "Call the lead", {"title": "Call {{payload.name}}"}),
    ("tag", "action", "add_tag", "Tag as nurture", {"tag": "nurture"}),
    ("goal", "goal", None, "Lead contacted", {}),
]

# (from, to, condition key)
_EDGES = [
    ("trigger", "welcome", None),
    ("welcome", "wait", None),
    ("wait", "check", None),
    ("check", "task", "yes"),
    ("check", "tag", "no"),
    ("task", "goal", None),
    ("tag", "goal", None),
]


def _ensure_settings() -> bool:
    if db.session.get(BusinessAutomationSettings, DEMO_BUSINESS_ID) is not None:
        return False
    db.session.add(
        BusinessAutomationSettings(
            business_id=DEMO_BUSINESS_ID,
            business_hours_enabled=True,
            timezone="Europe/Berlin",
            quiet_hours_enabled=True,
            default_sender_name="Demo Business",
        )
    )
    return True


def _ensure_example_workflow() -> bool:
    existing = Workflow.query.filter_by(
        business_id=DEMO_BUSINESS_ID, name=EXAMPLE_WORKFLOW_NAME
    ).first()
    if existing is not None:
        return False

    workflow = Workflow(
        business_id=DEMO_BUSINESS_ID,
        name=EXAMPLE_WORKFLOW_NAME,
        trigger_intent=EXAMPLE_INTENT,
    )
    ids = {ref: str(uuid.uuid4()) for ref, *_ in _NODES}
    for order, (ref, node_type, action, label, config) in enumerate(_NODES):
        workflow.nodes.append(
            WorkflowNode(
                id=ids[ref],
                node_type=node_type,
                action_type=action,
                label=label,
                config=config,
                execution_order=order,
            )
        )
    for position, (source, target, key) in enumerate(_EDGES):
        workflow.edges.append(
            WorkflowEdge(
                from_node_id=ids[source],
                to_node_id=ids[target],
                condition_key=key,
                position=position,
            )
        )
    db.session.add(workflow)
    return True


def main() -> None:
    app = create_app()
    with app.app_context():
        created_settings = _ensure_settings()
        created_workflow = _ensure_example_workflow()
        db.session.commit()

        print(
            "Seed completed",
            f"settings created={int(created_settings)}",
            f"workflows created={int(created_workflow)}",
        )


if __name__ == "__main__":
    main()
