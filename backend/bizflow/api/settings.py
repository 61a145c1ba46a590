"""Per-business automation settings endpoints."""

from __future__ import annotations

import re
from http import HTTPStatus
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from flask import Blueprint, jsonify, request

from ..extensions import db
from ..models.settings import BusinessAutomationSettings

bp = Blueprint("settings", __name__)

_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

_BOOL_FIELDS = {
    "businessHoursEnabled": "business_hours_enabled",
    "quietHoursEnabled": "quiet_hours_enabled",
    "automationsEnabled": "automations_enabled",
}
_TIME_FIELDS = {
    "businessHoursStart": "business_hours_start",
    "businessHoursEnd": "business_hours_end",
    "quietHoursStart": "quiet_hours_start",
    "quietHoursEnd": "quiet_hours_end",
}
_TEXT_FIELDS = {
    "defaultSenderName": "default_sender_name",
    "defaultSenderEmail": "default_sender_email",
    "defaultSenderPhone": "default_sender_phone",
}


def _serialize(settings: BusinessAutomationSettings) -> dict[str, Any]:
    data: dict[str, Any] = {"businessId": settings.business_id}
    for mapping in (_BOOL_FIELDS, _TIME_FIELDS, _TEXT_FIELDS):
        for key, attribute in mapping.items():
            data[key] = getattr(settings, attribute)
    data["businessDays"] = list(settings.business_days or [])
    data["timezone"] = settings.timezone
    data["maxMessagesPerContactPerDay"] = settings.max_messages_per_contact_per_day
    data["dedupeWindowMinutes"] = settings.dedupe_window_minutes
    return data


def _load_or_default(business_id: str) -> BusinessAutomationSettings:
    settings = db.session.get(BusinessAutomationSettings, business_id)
    if settings is None:
        settings = BusinessAutomationSettings(
            business_id=business_id,
            business_hours_enabled=False,
            business_hours_start="09:00",
            business_hours_end="17:00",
            business_days=[1, 2, 3, 4, 5],
            timezone="UTC",
            quiet_hours_enabled=False,
            quiet_hours_start="21:00",
            quiet_hours_end="08:00",
            max_messages_per_contact_per_day=5,
            automations_enabled=True,
        )
    return settings


def _apply(settings: BusinessAutomationSettings, payload: dict[str, Any]) -> list[str]:
    errors: list[str] = []

    for key, attribute in _BOOL_FIELDS.items():
        if key in payload:
            if not isinstance(payload[key], bool):
                errors.append(f"{key} must be a boolean")
            else:
                setattr(settings, attribute, payload[key])

    for key, attribute in _TIME_FIELDS.items():
        if key in payload:
            value = payload[key]
            if not isinstance(value, str) or not _TIME_PATTERN.match(value):
                errors.append(f"{key} must use HH:MM")
            else:
                setattr(settings, attribute, value)

    for key, attribute in _TEXT_FIELDS.items():
        if key in payload:
            setattr(settings, attribute, payload[key] or None)

    if "businessDays" in payload:
        days = payload["businessDays"]
        if not isinstance(days, list) or not all(
            isinstance(day, int) and 0 <= day <= 6 for day in days
        ):
            errors.append("businessDays must be a list of days 0 (Sunday) to 6 (Saturday)")
        else:
            settings.business_days = sorted(set(days))

    if "timezone" in payload:
        try:
            ZoneInfo(str(payload["timezone"]))
        except (ZoneInfoNotFoundError, ValueError):
            errors.append("timezone is unknown")
        else:
            settings.timezone = str(payload["timezone"])

    for key, attribute in (
        ("maxMessagesPerContactPerDay", "max_messages_per_contact_per_day"),
        ("dedupeWindowMinutes", "dedupe_window_minutes"),
    ):
        if key in payload:
            value = payload[key]
            if value is None and attribute == "dedupe_window_minutes":
                settings.dedupe_window_minutes = None
            elif not isinstance(value, int) or isinstance(value, bool) or value < 0:
                errors.append(f"{key} must be a non-negative integer")
            else:
                setattr(settings, attribute, value)

    return errors


@bp.get("/businesses/<business_id>/automation-settings")
def get_settings(business_id: str) -> tuple[object, int]:
    return jsonify(_serialize(_load_or_default(business_id))), HTTPStatus.OK


@bp.put("/businesses/<business_id>/automation-settings")
def update_settings(business_id: str) -> tuple[object, int]:
    payload = request.get_json(force=True, silent=True)
    if not isinstance(payload, dict):
        return jsonify({"error": "body must be a JSON object"}), HTTPStatus.BAD_REQUEST

    settings = _load_or_default(business_id)
    errors = _apply(settings, payload)
    if errors:
        db.session.rollback()
        return jsonify({"errors": errors}), HTTPStatus.BAD_REQUEST

    db.session.add(settings)
    db.session.commit()
    return jsonify(_serialize(settings)), HTTPStatus.OK
