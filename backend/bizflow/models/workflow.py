"""Workflow definition models: workflows, their nodes and edges."""

from __future__ import annotations

import uuid
from datetime import datetime

from ..extensions import db

NODE_TYPES = ("trigger", "action", "condition", "wait", "goal")


def _new_id() -> str:
    return str(uuid.uuid4())


class Workflow(db.Model):
    """An automation workflow owned by a business."""

    __tablename__ = "workflows"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    business_id = db.Column(db.String(36), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    trigger_intent = db.Column(db.String(120), nullable=True, index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    priority = db.Column(db.Integer, nullable=False, default=50)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(
        db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    nodes = db.relationship(
        "WorkflowNode",
        backref="workflow",
        cascade="all, delete-orphan",
        order_by="WorkflowNode.execution_order",
    )
    edges = db.relationship(
        "WorkflowEdge",
        backref="workflow",
        cascade="all, delete-orphan",
        order_by="WorkflowEdge.position",
    )

    def __repr__(self) -> str:  # pragma: no cover - repr not critical for tests
        return f"<Workflow {self.name!r}>"


class WorkflowNode(db.Model):
    """A typed step of a workflow graph."""

    __tablename__ = "workflow_nodes"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    workflow_id = db.Column(
        db.String(36), db.ForeignKey("workflows.id"), nullable=False, index=True
    )
    node_type = db.Column(db.Enum(*NODE_TYPES, name="workflow_node_type"), nullable=False)
    action_type = db.Column(db.String(64), nullable=True)
    label = db.Column(db.String(255), nullable=True)
    config = db.Column(db.JSON, nullable=False, default=dict)
    execution_order = db.Column(db.Integer, nullable=False, default=0)

    def __repr__(self) -> str:  # pragma: no cover - repr not critical for tests
        return f"<WorkflowNode {self.id} {self.node_type}:{self.action_type}>"


class WorkflowEdge(db.Model):
    """A transition between two nodes, optionally guarded by a branch key."""

    __tablename__ = "workflow_edges"
    __table_args__ = (
        db.UniqueConstraint("from_node_id", "condition_key", name="uq_edge_branch"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    workflow_id = db.Column(
        db.String(36), db.ForeignKey("workflows.id"), nullable=False, index=True
    )
    from_node_id = db.Column(db.String(36), nullable=False, index=True)
    to_node_id = db.Column(db.String(36), nullable=False)
    condition_key = db.Column(db.String(64), nullable=True)
    position = db.Column(db.Integer, nullable=False, default=0)
