"""Ingested business events that trigger automation runs."""

from __future__ import annotations

import uuid
from datetime import datetime

from ..extensions import db


class AutomationEvent(db.Model):
    """A business event such as a captured lead or a booking."""

    __tablename__ = "automation_events"
    __table_args__ = (
        db.UniqueConstraint("business_id", "dedupe_key", name="uq_event_dedupe"),
    )

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    business_id = db.Column(db.String(36), nullable=False, index=True)
    intent = db.Column(db.String(120), nullable=False, index=True)
    payload = db.Column(db.JSON, nullable=False, default=dict)
    dedupe_key = db.Column(db.String(255), nullable=True)
    contact_id = db.Column(db.String(36), nullable=True)
    source = db.Column(db.String(32), nullable=False, default="api")
    processed = db.Column(db.Boolean, nullable=False, default=False)
    occurred_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:  # pragma: no cover - repr not critical for tests
        return f"<AutomationEvent {self.id} {self.intent}>"
