"""Business-hours and quiet-hours gating for messaging nodes.

All calculations happen in the tenant's local timezone and results are
returned as aware UTC datetimes. Days follow the 0 = Sunday ... 6 = Saturday
convention used by the settings table.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, time, timedelta, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..models.settings import BusinessAutomationSettings
from .graph import Node

MESSAGING_ACTIONS = frozenset({"send_email", "send_sms", "make_call"})
DEFAULT_BUSINESS_DAYS = (1, 2, 3, 4, 5)


def _parse_time(value: object, default: time) -> time:
    if isinstance(value, time):
        return value
    if not isinstance(value, str):
        return default
    try:
        parts = [int(part) for part in value.strip().split(":")]
        return time(*parts[:3])
    except (TypeError, ValueError):
        return default


def _zone(name: str | None) -> tzinfo:
    if not name:
        return UTC
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return UTC


def _day_of_week(moment: datetime) -> int:
    return (moment.weekday() + 1) % 7


@dataclass(frozen=True)
class GatingPolicy:
    """Tenant time-window policy consulted before contacting a customer."""

    business_hours_enabled: bool = False
    business_start: time = time(9, 0)
    business_end: time = time(17, 0)
    business_days: tuple[int, ...] = DEFAULT_BUSINESS_DAYS
    quiet_hours_enabled: bool = False
    quiet_start: time = time(21, 0)
    quiet_end: time = time(8, 0)
    timezone: str = "UTC"

    @classmethod
    def from_settings(cls, settings: BusinessAutomationSettings | None) -> GatingPolicy:
        if settings is None:
            return cls()
        days = tuple(int(day) % 7 for day in (settings.business_days or ()))
        return cls(
            business_hours_enabled=bool(settings.business_hours_enabled),
            business_start=_parse_time(settings.business_hours_start, time(9, 0)),
            business_end=_parse_time(settings.business_hours_end, time(17, 0)),
            business_days=days or DEFAULT_BUSINESS_DAYS,
            quiet_hours_enabled=bool(settings.quiet_hours_enabled),
            quiet_start=_parse_time(settings.quiet_hours_start, time(21, 0)),
            quiet_end=_parse_time(settings.quiet_hours_end, time(8, 0)),
            timezone=settings.timezone or "UTC",
        )

    @property
    def zone(self) -> tzinfo:
        return _zone(self.timezone)


@dataclass(frozen=True)
class GateDecision:
    allowed: bool
    resume_at: datetime | None = None
    reason: str | None = None


ALLOW = GateDecision(allowed=True)


def is_messaging_action(action_kind: str | None) -> bool:
    return action_kind in MESSAGING_ACTIONS


def within_business_hours(policy: GatingPolicy, now: datetime) -> bool:
    local = now.astimezone(policy.zone)
    if _day_of_week(local) not in policy.business_days:
        return False
    return policy.business_start <= local.time() <= policy.business_end


def next_business_start(policy: GatingPolicy, now: datetime) -> datetime:
    """Return the next business-day opening strictly after ``now``."""

    zone = policy.zone
    local = now.astimezone(zone)
    for offset in range(8):
        day = local.date() + timedelta(days=offset)
        candidate = datetime.combine(day, policy.business_start, tzinfo=zone)
        if candidate > local and _day_of_week(candidate) in policy.business_days:
            return candidate.astimezone(UTC)
    raise ValueError("business policy has no business days")  # pragma: no cover


def within_quiet_hours(policy: GatingPolicy, now: datetime) -> bool:
    """Quiet windows are half-open so that resuming at their end proceeds."""

    current = now.astimezone(policy.zone).time()
    start, end = policy.quiet_start, policy.quiet_end
    if start > end:
        return current >= start or current < end
    return start <= current < end


def quiet_hours_end(policy: GatingPolicy, now: datetime) -> datetime:
    """Return the first instant after the current quiet window."""

    zone = policy.zone
    local = now.astimezone(zone)
    candidate = datetime.combine(local.date(), policy.quiet_end, tzinfo=zone)
    if candidate <= local:
        candidate = datetime.combine(
            local.date() + timedelta(days=1), policy.quiet_end, tzinfo=zone
        )
    return candidate.astimezone(UTC)


def evaluate(policy: GatingPolicy, node: Node, now: datetime) -> GateDecision:
    """Decide whether ``node`` may run at ``now`` under ``policy``."""

    if not is_messaging_action(node.action_kind):
        return ALLOW

    if policy.business_hours_enabled and not within_business_hours(policy, now):
        return GateDecision(
            allowed=False,
            resume_at=next_business_start(policy, now),
            reason="outside business hours",
        )

    if policy.quiet_hours_enabled and within_quiet_hours(policy, now):
        return GateDecision(
            allowed=False,
            resume_at=quiet_hours_end(policy, now),
            reason="inside quiet hours",
        )

    return ALLOW
