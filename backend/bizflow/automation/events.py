"""Event ingestion: store business events and start the matching workflows."""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models.event import AutomationEvent
from ..models.run import AutomationRun
from ..models.settings import BusinessAutomationSettings
from ..models.workflow import Workflow
from ..utils.time import format_iso, to_db
from .engine import AutomationEngine


def _recent_duplicate(
    business_id: str, intent: str, contact_id: str | None, window_minutes: int, now: datetime
) -> AutomationEvent | None:
    since = to_db(now - timedelta(minutes=window_minutes))
    query = AutomationEvent.query.filter(
        AutomationEvent.business_id == business_id,
        AutomationEvent.intent == intent,
        AutomationEvent.occurred_at >= since,
    )
    if contact_id:
        query = query.filter(AutomationEvent.contact_id == contact_id)
    return query.order_by(AutomationEvent.occurred_at.desc()).first()


def matching_workflows(business_id: str, intent: str) -> list[Workflow]:
    """Active workflows of ``business_id`` for ``intent``, lowest priority value first."""

    return (
        Workflow.query.filter_by(business_id=business_id, trigger_intent=intent, is_active=True)
        .order_by(Workflow.priority.asc(), Workflow.created_at.asc())
        .all()
    )


def ingest_event(
    engine: AutomationEngine,
    business_id: str,
    intent: str,
    payload: dict[str, Any] | None = None,
    dedupe_key: str | None = None,
    contact_id: str | None = None,
    source: str = "api",
) -> dict[str, Any]:
    """Record an event and run every workflow it triggers.

    Returns a summary with the event id and one entry per workflow.
    """

    now = engine.clock()
    settings = db.session.get(BusinessAutomationSettings, business_id)
    if settings is not None and not settings.automations_enabled:
        return {"eventId": None, "triggered": [], "reason": "Automations disabled"}

    if dedupe_key:
        existing = AutomationEvent.query.filter_by(
            business_id=business_id, dedupe_key=dedupe_key
        ).first()
        if existing is not None:
            return {"eventId": existing.id, "duplicate": True, "triggered": []}

    window = settings.dedupe_window_minutes if settings is not None else None
    suppressed = bool(window) and _recent_duplicate(
        business_id, intent, contact_id, window, now
    ) is not None

    event = AutomationEvent(
        business_id=business_id,
        intent=intent,
        payload=payload or {},
        dedupe_key=dedupe_key,
        contact_id=contact_id,
        source=source,
        occurred_at=to_db(now),
    )
    db.session.add(event)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        existing = AutomationEvent.query.filter_by(
            business_id=business_id, dedupe_key=dedupe_key
        ).first()
        return {"eventId": existing.id if existing else None, "duplicate": True, "triggered": []}

    if suppressed:
        event.processed = True
        db.session.commit()
        return {"eventId": event.id, "triggered": [], "reason": "Within dedupe window"}

    business = {"id": business_id}
    if settings is not None and settings.default_sender_name:
        business["name"] = settings.default_sender_name

    triggered: list[dict[str, Any]] = []
    for workflow in matching_workflows(business_id, intent):
        context: dict[str, Any] = {
            "intent": intent,
            "eventId": event.id,
            "payload": payload or {},
            "business": business,
            "triggered_at": format_iso(now),
        }
        run = AutomationRun(
            workflow_id=workflow.id,
            event_id=event.id,
            contact_id=contact_id,
            context=context,
            idempotency_key=f"{event.id}:{workflow.id}",
            started_at=to_db(now),
        )
        db.session.add(run)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            triggered.append({"workflowId": workflow.id, "skipped": True, "reason": "Already triggered"})
            continue

        result = engine.invoke(run.id)
        triggered.append({"workflowId": workflow.id, **result.to_dict()})

    event.processed = True
    db.session.commit()
    return {"eventId": event.id, "triggered": triggered}
