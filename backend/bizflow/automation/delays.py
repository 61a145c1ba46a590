"""Parsing of wait-node delays."""
from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import timedelta
from typing import Any

DEFAULT_DELAY = timedelta(minutes=5)
MAX_DELAY = timedelta(days=3650)

_ISO_DURATION = re.compile(
    r"^P(?:(?P<days>\d+)D)?"
    r"(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+)S)?)?$"
)
_SHORTHAND = re.compile(r"^(?P<value>\d+)\s*(?P<unit>[smhd])$")
_UNITS = {"s": "seconds", "m": "minutes", "h": "hours", "d": "days"}


def parse_duration(value: Any) -> timedelta | None:
    """Parse ``P1DT2H``-style or ``5m``-style durations.

    Returns ``None`` for unrecognised input and for durations longer than
    ``MAX_DELAY``.
    """

    try:
        delay = _parse(value)
    except (OverflowError, ValueError):
        return None
    if delay is None or delay > MAX_DELAY:
        return None
    return delay


def _parse(value: Any) -> timedelta | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return timedelta(minutes=value) if value >= 0 else None
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    match = _ISO_DURATION.match(text.upper())
    if match and text.upper() not in {"P", "PT"}:
        parts = {name: int(amount) for name, amount in match.groupdict().items() if amount}
        return timedelta(**parts)

    match = _SHORTHAND.match(text.lower())
    if match:
        return timedelta(**{_UNITS[match.group("unit")]: int(match.group("value"))})

    if text.isdigit():
        return timedelta(minutes=int(text))

    return None


def parse_delay(config: Mapping[str, Any] | None) -> timedelta:
    """Return the delay configured on a wait node, defaulting to five minutes."""

    config = config or {}
    raw = config.get("duration")
    if raw in (None, ""):
        raw = config.get("delay")
    delay = parse_duration(raw)
    return DEFAULT_DELAY if delay is None else delay
