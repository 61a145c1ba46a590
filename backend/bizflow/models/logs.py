"""Automation audit log model definition."""

from __future__ import annotations

from datetime import datetime

from ..extensions import db

LOG_LEVELS = ("debug", "info", "warn", "error")


class AutomationLog(db.Model):
    """Append-only audit entry written while a run executes."""

    __tablename__ = "automation_logs"

    id = db.Column(db.Integer, primary_key=True)
    run_id = db.Column(db.String(36), nullable=False, index=True)
    node_id = db.Column(db.String(36), nullable=True)
    level = db.Column(db.Enum(*LOG_LEVELS, name="automation_log_level"), nullable=False)
    message = db.Column(db.Text, nullable=False)
    data = db.Column(db.JSON, nullable=False, default=dict)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:  # pragma: no cover - repr not critical for tests
        return f"<AutomationLog {self.id} {self.level} run={self.run_id}>"
