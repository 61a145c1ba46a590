"""Run inspection and cancellation endpoints."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any

from flask import Blueprint, jsonify

from ..automation.engine import build_engine
from ..automation.errors import InvalidTransitionError
from ..extensions import db
from ..models.job import ScheduledJob
from ..models.run import AutomationRun
from ..utils.time import format_iso

bp = Blueprint("runs", __name__)


def serialize_run(run: AutomationRun) -> dict[str, Any]:
    return {
        "id": run.id,
        "workflowId": run.workflow_id,
        "eventId": run.event_id,
        "contactId": run.contact_id,
        "status": run.status,
        "currentNodeId": run.current_node_id,
        "context": run.context or {},
        "errorMessage": run.error_message,
        "stepsCompleted": run.steps_completed,
        "maxSteps": run.max_steps,
        "startedAt": format_iso(run.started_at),
        "completedAt": format_iso(run.completed_at),
        "pausedUntil": format_iso(run.paused_until),
    }


def _serialize_job(job: ScheduledJob) -> dict[str, Any]:
    return {
        "id": job.id,
        "nodeId": job.node_id,
        "status": job.status,
        "executeAt": format_iso(job.execute_at),
        "attempts": job.attempts,
    }


@bp.get("/automation/runs/<run_id>")
def get_run(run_id: str) -> tuple[object, int]:
    run = db.get_or_404(AutomationRun, run_id)
    jobs = (
        ScheduledJob.query.filter_by(run_id=run.id)
        .order_by(ScheduledJob.created_at.asc())
        .all()
    )
    body = serialize_run(run)
    body["jobs"] = [_serialize_job(job) for job in jobs]
    return jsonify(body), HTTPStatus.OK


@bp.post("/automation/runs/<run_id>/cancel")
def cancel_run(run_id: str) -> tuple[object, int]:
    db.get_or_404(AutomationRun, run_id)
    try:
        run = build_engine().cancel(run_id)
    except InvalidTransitionError:
        return jsonify({"error": "run is already finished"}), HTTPStatus.CONFLICT
    return jsonify(serialize_run(run)), HTTPStatus.OK
