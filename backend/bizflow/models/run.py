"""Automation run ledger model."""

from __future__ import annotations

import uuid
from datetime import datetime

from ..extensions import db

PENDING = "pending"
RUNNING = "running"
PAUSED = "paused"
COMPLETED = "completed"
FAILED = "failed"
CANCELLED = "cancelled"

RUN_STATUSES = (PENDING, RUNNING, PAUSED, COMPLETED, FAILED, CANCELLED)
TERMINAL_STATUSES = frozenset({COMPLETED, FAILED, CANCELLED})


class AutomationRun(db.Model):
    """Persisted state of one workflow execution."""

    __tablename__ = "automation_runs"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    workflow_id = db.Column(
        db.String(36), db.ForeignKey("workflows.id"), nullable=False, index=True
    )
    event_id = db.Column(db.String(36), nullable=True)
    contact_id = db.Column(db.String(36), nullable=True, index=True)
    status = db.Column(
        db.Enum(*RUN_STATUSES, name="automation_run_status"),
        nullable=False,
        default=PENDING,
        index=True,
    )
    current_node_id = db.Column(db.String(36), nullable=True)
    context = db.Column(db.JSON, nullable=False, default=dict)
    error_message = db.Column(db.Text, nullable=True)
    started_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    completed_at = db.Column(db.DateTime, nullable=True)
    paused_at = db.Column(db.DateTime, nullable=True)
    paused_until = db.Column(db.DateTime, nullable=True)
    paused_seconds = db.Column(db.Float, nullable=False, default=0.0)
    steps_completed = db.Column(db.Integer, nullable=False, default=0)
    max_steps = db.Column(db.Integer, nullable=True)
    idempotency_key = db.Column(db.String(255), unique=True, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def __repr__(self) -> str:  # pragma: no cover - repr not critical for tests
        return f"<AutomationRun {self.id} {self.status}>"
