"""Runtime endpoint: process the next batch of an automation run."""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, current_app, jsonify, request

from ..automation.engine import build_engine
from ..automation.errors import RunNotFoundError
from ..extensions import db

bp = Blueprint("runtime", __name__)


@bp.post("/automation/runtime")
def invoke_runtime() -> tuple[object, int]:
    payload = request.get_json(force=True, silent=True) or {}
    run_id = payload.get("runId") if isinstance(payload, dict) else None
    if not run_id or not isinstance(run_id, str):
        return jsonify({"error": "runId is required"}), HTTPStatus.BAD_REQUEST
    resume_from = payload.get("resumeFromNodeId")
    if resume_from is not None and not isinstance(resume_from, str):
        return jsonify({"error": "resumeFromNodeId must be a string"}), HTTPStatus.BAD_REQUEST

    engine = build_engine()
    try:
        result = engine.invoke(run_id, resume_from or None)
    except RunNotFoundError:
        return jsonify({"error": "Run not found"}), HTTPStatus.NOT_FOUND
    except Exception as exc:
        db.session.rollback()
        current_app.logger.exception("[automation-runtime] invocation of run %s failed", run_id)
        return jsonify({"error": str(exc)}), HTTPStatus.INTERNAL_SERVER_ERROR

    return jsonify(result.to_dict()), HTTPStatus.OK
