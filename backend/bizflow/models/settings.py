"""Per-business automation policy settings."""

from __future__ import annotations

from datetime import datetime

from ..extensions import db


class BusinessAutomationSettings(db.Model):
    """Business hours, quiet hours and sender identity for one tenant."""

    __tablename__ = "business_automation_settings"

    business_id = db.Column(db.String(36), primary_key=True)

    business_hours_enabled = db.Column(db.Boolean, nullable=False, default=False)
    business_hours_start = db.Column(db.String(5), nullable=False, default="09:00")
    business_hours_end = db.Column(db.String(5), nullable=False, default="17:00")
    # 0 = Sunday ... 6 = Saturday
    business_days = db.Column(db.JSON, nullable=False, default=lambda: [1, 2, 3, 4, 5])
    timezone = db.Column(db.String(64), nullable=False, default="UTC")

    quiet_hours_enabled = db.Column(db.Boolean, nullable=False, default=False)
    quiet_hours_start = db.Column(db.String(5), nullable=False, default="21:00")
    quiet_hours_end = db.Column(db.String(5), nullable=False, default="08:00")

    max_messages_per_contact_per_day = db.Column(db.Integer, nullable=False, default=5)
    dedupe_window_minutes = db.Column(db.Integer, nullable=True)

    default_sender_name = db.Column(db.String(255), nullable=True)
    default_sender_email = db.Column(db.String(255), nullable=True)
    default_sender_phone = db.Column(db.String(32), nullable=True)

    automations_enabled = db.Column(db.Boolean, nullable=False, default=True)
    updated_at = db.Column(
        db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    def __repr__(self) -> str:  # pragma: no cover - repr not critical for tests
        return f"<BusinessAutomationSettings {self.business_id}>"
