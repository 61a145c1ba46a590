"""Scheduled resume jobs for paused runs."""

from __future__ import annotations

import uuid
from datetime import datetime

from ..extensions import db

JOB_STATUSES = ("queued", "processing", "completed", "failed", "cancelled")


class ScheduledJob(db.Model):
    """A future point at which a paused run resumes on a given node."""

    __tablename__ = "automation_jobs"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    run_id = db.Column(
        db.String(36), db.ForeignKey("automation_runs.id"), nullable=False, index=True
    )
    node_id = db.Column(db.String(36), nullable=False)
    status = db.Column(
        db.Enum(*JOB_STATUSES, name="automation_job_status"),
        nullable=False,
        default="queued",
        index=True,
    )
    execute_at = db.Column(db.DateTime, nullable=False, index=True)
    attempts = db.Column(db.Integer, nullable=False, default=0)
    max_attempts = db.Column(db.Integer, nullable=False, default=3)
    last_error = db.Column(db.Text, nullable=True)
    processed_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:  # pragma: no cover - repr not critical for tests
        return f"<ScheduledJob {self.id} run={self.run_id} node={self.node_id}>"
