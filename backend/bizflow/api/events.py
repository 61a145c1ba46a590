"""Event ingestion endpoint."""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, current_app, jsonify, request

from ..automation.engine import build_engine
from ..automation.events import ingest_event
from ..extensions import db, limiter

bp = Blueprint("events", __name__)


def _event_rate_limit() -> str:
    return current_app.config.get("EVENT_RATE_LIMIT", "120 per minute")


@bp.post("/automation/events")
@limiter.limit(_event_rate_limit)
def post_event() -> tuple[object, int]:
    payload = request.get_json(force=True, silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "request body must be an object"}), HTTPStatus.BAD_REQUEST

    business_id = payload.get("businessId")
    intent = payload.get("intent")
    if not isinstance(business_id, str) or not business_id.strip():
        return jsonify({"error": "businessId is required"}), HTTPStatus.BAD_REQUEST
    if not isinstance(intent, str) or not intent.strip():
        return jsonify({"error": "intent is required"}), HTTPStatus.BAD_REQUEST
    business_id = business_id.strip()
    intent = intent.strip()

    event_payload = payload.get("payload") or {}
    if not isinstance(event_payload, dict):
        return jsonify({"error": "payload must be an object"}), HTTPStatus.BAD_REQUEST

    try:
        summary = ingest_event(
            build_engine(),
            business_id,
            intent,
            payload=event_payload,
            dedupe_key=payload.get("dedupeKey"),
            contact_id=payload.get("contactId"),
            source=payload.get("source") or "api",
        )
    except Exception as exc:
        db.session.rollback()
        current_app.logger.exception("[automation-event] ingestion for %s failed", business_id)
        return jsonify({"error": str(exc)}), HTTPStatus.INTERNAL_SERVER_ERROR

    status = HTTPStatus.OK if summary.get("duplicate") else HTTPStatus.ACCEPTED
    return jsonify(summary), status
