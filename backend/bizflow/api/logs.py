"""API endpoints exposing the audit trail of a run."""

from __future__ import annotations

import json
from http import HTTPStatus

from flask import Blueprint, Response, jsonify, request

from ..extensions import db
from ..models.logs import LOG_LEVELS, AutomationLog
from ..models.run import AutomationRun
from ..utils.time import format_iso

bp = Blueprint("logs", __name__)


def _serialize_entry(entry: AutomationLog) -> dict[str, object]:
    return {
        "id": entry.id,
        "runId": entry.run_id,
        "nodeId": entry.node_id,
        "level": entry.level,
        "message": entry.message,
        "data": entry.data or {},
        "createdAt": format_iso(entry.created_at),
    }


def _entries_query(run_id: str, level: str | None):
    query = AutomationLog.query.filter_by(run_id=run_id)
    if level:
        if level not in LOG_LEVELS:
            return None
        query = query.filter_by(level=level)
    return query


@bp.get("/automation/runs/<run_id>/logs")
def get_run_logs(run_id: str) -> tuple[object, int]:
    db.get_or_404(AutomationRun, run_id)
    limit = request.args.get("limit", type=int) or 200
    limit = max(1, min(limit, 500))

    query = _entries_query(run_id, request.args.get("level"))
    if query is None:
        return jsonify({"error": "invalid level"}), HTTPStatus.BAD_REQUEST

    entries = query.order_by(AutomationLog.id.asc()).limit(limit).all()
    return jsonify([_serialize_entry(entry) for entry in entries]), HTTPStatus.OK


@bp.get("/automation/runs/<run_id>/logs/download")
def download_run_logs(run_id: str) -> Response | tuple[object, int]:
    db.get_or_404(AutomationRun, run_id)
    query = _entries_query(run_id, request.args.get("level"))
    if query is None:
        return jsonify({"error": "invalid level"}), HTTPStatus.BAD_REQUEST

    entries = query.order_by(AutomationLog.id.asc()).all()
    payload = "\n".join(json.dumps(_serialize_entry(entry)) for entry in entries)
    response = Response(payload, mimetype="application/x-ndjson")
    response.headers["Content-Disposition"] = f"attachment; filename=run-{run_id}-logs.ndjson"
    return response
