"""Read-only view of a workflow's nodes and edges, and edge selection."""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from functools import cached_property
from typing import Any

from ..models.workflow import NODE_TYPES, WorkflowEdge, WorkflowNode
from .errors import GraphValidationError

FALLBACK_FIRST = "first"
FALLBACK_NONE = "none"

_DEFAULT_KEYS = {None, "", "default"}


@dataclass(frozen=True)
class Node:
    """A typed workflow step."""

    id: str
    type: str
    action_kind: str | None = None
    label: str | None = None
    config: dict[str, Any] = field(default_factory=dict)
    order: int = 0

    @property
    def display_name(self) -> str:
        return self.label or self.action_kind or self.type

    @classmethod
    def from_row(cls, row: WorkflowNode) -> Node:
        return cls(
            id=str(row.id),
            type=row.node_type,
            action_kind=row.action_type,
            label=row.label,
            config=dict(row.config or {}),
            order=row.execution_order or 0,
        )


@dataclass(frozen=True)
class Edge:
    """A transition between nodes, selected by ``condition_key`` when branching."""

    from_id: str
    to_id: str
    condition_key: str | None = None

    @property
    def is_default(self) -> bool:
        return self.condition_key in _DEFAULT_KEYS

    @classmethod
    def from_row(cls, row: WorkflowEdge) -> Edge:
        return cls(
            from_id=str(row.from_node_id),
            to_id=str(row.to_node_id),
            condition_key=row.condition_key,
        )


@dataclass(frozen=True)
class WorkflowGraph:
    """Nodes ordered by execution order and edges in definition order."""

    workflow_id: str
    nodes: tuple[Node, ...]
    edges: tuple[Edge, ...]

    @classmethod
    def build(
        cls, workflow_id: str, nodes: Iterable[Node], edges: Iterable[Edge]
    ) -> WorkflowGraph:
        ordered = sorted(nodes, key=lambda node: node.order)
        return cls(workflow_id=workflow_id, nodes=tuple(ordered), edges=tuple(edges))

    @cached_property
    def _by_id(self) -> dict[str, Node]:
        return {node.id: node for node in self.nodes}

    @cached_property
    def _outgoing(self) -> dict[str, list[Edge]]:
        outgoing: dict[str, list[Edge]] = {}
        for edge in self.edges:
            outgoing.setdefault(edge.from_id, []).append(edge)
        return outgoing

    def __len__(self) -> int:
        return len(self.nodes)

    def get(self, node_id: str | None) -> Node | None:
        if node_id is None:
            return None
        return self._by_id.get(str(node_id))

    def outgoing(self, node_id: str) -> list[Edge]:
        return list(self._outgoing.get(node_id, []))

    def entry_node(self) -> Node | None:
        """Return the first trigger node, else the first node by order."""

        for node in self.nodes:
            if node.type == "trigger":
                return node
        return self.nodes[0] if self.nodes else None

    def next_node_id(
        self,
        node_id: str,
        branch_key: str | None = None,
        fallback: str = FALLBACK_FIRST,
    ) -> str | None:
        """Select the successor of ``node_id`` for the given branch key.

        A single outgoing edge is always followed. With several edges the one
        whose condition key equals ``branch_key`` wins, then the first default
        edge, then (with the ``first`` fallback) the first edge defined.
        """

        outgoing = self._outgoing.get(node_id, [])
        if not outgoing:
            return None
        if len(outgoing) == 1:
            return outgoing[0].to_id

        if branch_key is not None:
            for edge in outgoing:
                if edge.condition_key == branch_key:
                    return edge.to_id

        for edge in outgoing:
            if edge.is_default:
                return edge.to_id

        if fallback == FALLBACK_FIRST:
            return outgoing[0].to_id
        return None

    def validate(self, known_actions: Iterable[str] = ()) -> list[str]:
        """Check structural invariants.

        Raises ``GraphValidationError`` for broken structure and returns
        warnings (such as unknown action kinds) that do not stop execution.
        """

        errors: list[str] = []
        warnings: list[str] = []
        known = set(known_actions)

        seen_ids: set[str] = set()
        for node in self.nodes:
            if node.id in seen_ids:
                errors.append(f"duplicate node id {node.id}")
            seen_ids.add(node.id)
            if node.type not in NODE_TYPES:
                errors.append(f"node {node.id} has unknown type {node.type!r}")
            if node.type == "action" and known and node.action_kind not in known:
                warnings.append(f"node {node.id} has unknown action {node.action_kind!r}")

        branches: set[tuple[str, str | None]] = set()
        for edge in self.edges:
            for endpoint in (edge.from_id, edge.to_id):
                if endpoint not in seen_ids:
                    errors.append(f"edge references unknown node {endpoint}")
            key = (edge.from_id, None if edge.is_default else edge.condition_key)
            if key in branches:
                errors.append(
                    f"node {edge.from_id} has more than one edge for condition "
                    f"{edge.condition_key!r}"
                )
            branches.add(key)

        if errors:
            raise GraphValidationError(errors)
        return warnings


def load_graph(workflow_id: str) -> WorkflowGraph:
    """Build the graph view of a stored workflow."""

    node_rows = (
        WorkflowNode.query.filter_by(workflow_id=workflow_id)
        .order_by(WorkflowNode.execution_order.asc())
        .all()
    )
    edge_rows = (
        WorkflowEdge.query.filter_by(workflow_id=workflow_id)
        .order_by(WorkflowEdge.position.asc())
        .all()
    )
    return WorkflowGraph.build(
        workflow_id,
        (Node.from_row(row) for row in node_rows),
        (Edge.from_row(row) for row in edge_rows),
    )
