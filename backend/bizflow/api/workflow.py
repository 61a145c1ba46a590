"""REST API endpoints for storing and retrieving workflows."""

from __future__ import annotations

import uuid
from http import HTTPStatus
from typing import Any

from flask import Blueprint, jsonify, request
from sqlalchemy import func

from ..automation.actions import ACTION_HANDLERS
from ..automation.errors import GraphValidationError
from ..automation.graph import Edge, Node, WorkflowGraph
from ..extensions import db
from ..models.workflow import NODE_TYPES, Workflow, WorkflowEdge, WorkflowNode

bp = Blueprint("workflows", __name__)

MAX_NODES = 200


def _serialize_node(node: WorkflowNode) -> dict[str, Any]:
    return {
        "id": node.id,
        "type": node.node_type,
        "actionType": node.action_type,
        "label": node.label,
        "config": node.config or {},
        "order": node.execution_order,
    }


def _serialize_edge(edge: WorkflowEdge) -> dict[str, Any]:
    return {
        "id": edge.id,
        "from": edge.from_node_id,
        "to": edge.to_node_id,
        "conditionKey": edge.condition_key,
    }


def _serialize_workflow(workflow: Workflow, *, with_graph: bool = True) -> dict[str, Any]:
    """Return a JSON serialisable representation of a workflow."""

    data: dict[str, Any] = {
        "id": workflow.id,
        "businessId": workflow.business_id,
        "name": workflow.name,
        "triggerIntent": workflow.trigger_intent,
        "isActive": workflow.is_active,
        "priority": workflow.priority,
    }
    if with_graph:
        data["nodes"] = [_serialize_node(node) for node in workflow.nodes]
        data["edges"] = [_serialize_edge(edge) for edge in workflow.edges]
    return data


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _parse_graph(payload: dict[str, Any]) -> tuple[list[Node], list[Edge], list[str]]:
    """Turn the request's nodes and edges into graph values keyed by client ids."""

    errors: list[str] = []
    raw_nodes = payload.get("nodes") or []
    raw_edges = payload.get("edges") or []
    if not isinstance(raw_nodes, list) or not isinstance(raw_edges, list):
        return [], [], ["nodes and edges must be lists"]
    if len(raw_nodes) > MAX_NODES:
        return [], [], [f"a workflow may have at most {MAX_NODES} nodes"]

    nodes: list[Node] = []
    for index, raw in enumerate(raw_nodes):
        if not isinstance(raw, dict):
            errors.append(f"node #{index} must be an object")
            continue
        node_type = raw.get("type")
        if node_type not in NODE_TYPES:
            errors.append(f"node #{index} has invalid type {node_type!r}")
            continue
        if node_type == "action" and not raw.get("actionType"):
            errors.append(f"node #{index} requires actionType")
            continue
        config = raw.get("config") or {}
        if not isinstance(config, dict):
            errors.append(f"node #{index} config must be an object")
            continue
        nodes.append(
            Node(
                id=str(raw.get("id") or f"node-{index}"),
                type=node_type,
                action_kind=raw.get("actionType"),
                label=raw.get("label"),
                config=config,
                order=_as_int(raw.get("order"), index),
            )
        )

    edges: list[Edge] = []
    for index, raw in enumerate(raw_edges):
        if not isinstance(raw, dict) or not raw.get("from") or not raw.get("to"):
            errors.append(f"edge #{index} requires from and to")
            continue
        edges.append(
            Edge(
                from_id=str(raw["from"]),
                to_id=str(raw["to"]),
                condition_key=raw.get("conditionKey"),
            )
        )

    return nodes, edges, errors


def _text(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    return value.strip() if isinstance(value, str) else ""


def _is_name_unique(business_id: str, name: str) -> bool:
    """Check whether the workflow name is unique within the business."""

    query = Workflow.query.filter(
        Workflow.business_id == business_id, func.lower(Workflow.name) == name.lower()
    )
    return not db.session.query(query.exists()).scalar()


@bp.post("/workflows")
def create_workflow() -> tuple[object, int]:
    payload = request.get_json(silent=True, force=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "request body must be an object"}), HTTPStatus.BAD_REQUEST
    name = _text(payload, "name")
    business_id = _text(payload, "businessId")

    if not name:
        return jsonify({"error": "name is required"}), HTTPStatus.BAD_REQUEST
    if not business_id:
        return jsonify({"error": "businessId is required"}), HTTPStatus.BAD_REQUEST
    if not _is_name_unique(business_id, name):
        return jsonify({"error": "a workflow with this name already exists"}), HTTPStatus.CONFLICT

    nodes, edges, errors = _parse_graph(payload)
    if errors:
        return jsonify({"errors": errors}), HTTPStatus.BAD_REQUEST

    graph = WorkflowGraph.build("new", nodes, edges)
    try:
        warnings = graph.validate(ACTION_HANDLERS)
    except GraphValidationError as exc:
        return jsonify({"errors": exc.errors}), HTTPStatus.BAD_REQUEST

    workflow = Workflow(
        business_id=business_id,
        name=name,
        trigger_intent=payload.get("triggerIntent"),
        is_active=bool(payload.get("isActive", True)),
        priority=_as_int(payload.get("priority"), 50),
    )
    # Node ids are global, so client ids are mapped to fresh ones.
    ids = {node.id: str(uuid.uuid4()) for node in graph.nodes}
    for node in graph.nodes:
        workflow.nodes.append(
            WorkflowNode(
                id=ids[node.id],
                node_type=node.type,
                action_type=node.action_kind,
                label=node.label,
                config=node.config,
                execution_order=node.order,
            )
        )
    for position, edge in enumerate(graph.edges):
        workflow.edges.append(
            WorkflowEdge(
                from_node_id=ids[edge.from_id],
                to_node_id=ids[edge.to_id],
                condition_key=None if edge.is_default else edge.condition_key,
                position=position,
            )
        )
    db.session.add(workflow)
    db.session.commit()

    body = _serialize_workflow(workflow)
    if warnings:
        body["warnings"] = warnings
    return jsonify(body), HTTPStatus.CREATED


@bp.get("/workflows")
def list_workflows() -> tuple[object, int]:
    query = Workflow.query
    business_id = request.args.get("businessId")
    if business_id:
        query = query.filter_by(business_id=business_id)
    workflows = query.order_by(Workflow.priority.asc(), Workflow.created_at.desc()).all()
    return (
        jsonify([_serialize_workflow(wf, with_graph=False) for wf in workflows]),
        HTTPStatus.OK,
    )


@bp.get("/workflows/<workflow_id>")
def get_workflow(workflow_id: str) -> tuple[object, int]:
    workflow = db.get_or_404(Workflow, workflow_id)
    return jsonify(_serialize_workflow(workflow)), HTTPStatus.OK


@bp.put("/workflows/<workflow_id>")
def update_workflow(workflow_id: str) -> tuple[object, int]:
    workflow = db.get_or_404(Workflow, workflow_id)
    payload = request.get_json(silent=True, force=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "request body must be an object"}), HTTPStatus.BAD_REQUEST

    if payload.get("name") is not None:
        name = _text(payload, "name")
        if not name:
            return jsonify({"error": "name must not be empty"}), HTTPStatus.BAD_REQUEST
        if name.lower() != workflow.name.lower() and not _is_name_unique(workflow.business_id, name):
            return jsonify({"error": "a workflow with this name already exists"}), HTTPStatus.CONFLICT
        workflow.name = name

    if "triggerIntent" in payload:
        workflow.trigger_intent = payload.get("triggerIntent")
    if "isActive" in payload:
        workflow.is_active = bool(payload["isActive"])
    if "priority" in payload:
        try:
            workflow.priority = int(payload["priority"])
        except (TypeError, ValueError):
            return jsonify({"error": "priority must be an integer"}), HTTPStatus.BAD_REQUEST

    db.session.commit()
    return jsonify(_serialize_workflow(workflow)), HTTPStatus.OK
