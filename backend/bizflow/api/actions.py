"""Catalogue of the action kinds workflow nodes can use."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any

from flask import Blueprint, jsonify

from ..automation.actions import ActionSpec, find_action, iter_actions

bp = Blueprint("actions", __name__)


def _serialize_action(spec: ActionSpec) -> dict[str, Any]:
    return {"kind": spec.kind, "description": spec.description}


@bp.get("/automation/actions")
def list_actions() -> tuple[object, int]:
    return jsonify([_serialize_action(spec) for spec in iter_actions()]), HTTPStatus.OK


@bp.get("/automation/actions/<kind>")
def get_action(kind: str) -> tuple[object, int]:
    spec = find_action(kind)
    if spec is None:
        return jsonify({"error": f"unknown action {kind!r}"}), HTTPStatus.NOT_FOUND
    return jsonify(_serialize_action(spec)), HTTPStatus.OK
