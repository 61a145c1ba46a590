"""Trigger for the scheduled resume job consumer."""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, current_app, jsonify, request

from ..automation.engine import build_engine
from ..automation.scheduler import process_due_jobs

bp = Blueprint("jobs", __name__)


@bp.post("/automation/jobs/process")
def process_jobs() -> tuple[object, int]:
    payload = request.get_json(force=True, silent=True) or {}
    if not isinstance(payload, dict):
        payload = {}
    default_limit = int(current_app.config.get("AUTOMATION_JOB_BATCH_LIMIT", 50))
    try:
        limit = int(payload.get("limit") or default_limit)
    except (TypeError, ValueError):
        return jsonify({"error": "limit must be an integer"}), HTTPStatus.BAD_REQUEST
    limit = max(1, min(limit, default_limit))

    engine = build_engine()
    results = process_due_jobs(engine.clock(), engine.invoke, limit=limit)
    return jsonify({"processed": len(results), "results": results}), HTTPStatus.OK
