"""Run context access: dotted-path lookups and template interpolation."""
from __future__ import annotations

import re
from collections.abc import Mapping
from copy import deepcopy
from typing import Any

_PLACEHOLDER = re.compile(r"\{\{([^}]+)\}\}")
_ROOTED_PREFIXES = ("payload", "contact")


def resolve_path(data: Any, path: str) -> Any:
    """Follow a dotted path through nested mappings; ``None`` when missing."""

    value = data
    for key in path.strip().split("."):
        if isinstance(value, Mapping):
            value = value.get(key)
        elif isinstance(value, list) and key.isdigit() and int(key) < len(value):
            value = value[int(key)]
        else:
            return None
        if value is None:
            return None
    return value


def resolve_field(context: Mapping[str, Any], field: str) -> Any:
    """Resolve a condition field against ``payload``, ``contact`` or the context root."""

    if not field:
        return None
    for prefix in _ROOTED_PREFIXES:
        if field.startswith(prefix + "."):
            return resolve_path(context.get(prefix) or {}, field[len(prefix) + 1:])
    return resolve_path(context, field)


def interpolate(template: str | None, context: Mapping[str, Any]) -> str | None:
    """Replace ``{{dot.path}}`` placeholders; unresolved ones stay literal."""

    if not template:
        return template

    def _replace(match: re.Match[str]) -> str:
        value = resolve_path(context, match.group(1))
        if value is None:
            return match.group(0)
        return str(value)

    return _PLACEHOLDER.sub(_replace, str(template))


class RunContext:
    """Accumulated run data: the triggering event plus one fragment per step."""

    def __init__(self, data: Mapping[str, Any] | None = None):
        self._data: dict[str, Any] = deepcopy(dict(data or {}))

    @staticmethod
    def step_key(node_id: str) -> str:
        return f"step_{node_id}"

    @property
    def payload(self) -> dict[str, Any]:
        payload = self._data.get("payload")
        return payload if isinstance(payload, dict) else {}

    @property
    def contact(self) -> dict[str, Any]:
        contact = self._data.get("contact")
        return contact if isinstance(contact, dict) else {}

    @property
    def business(self) -> dict[str, Any]:
        business = self._data.get("business")
        return business if isinstance(business, dict) else {}

    @property
    def business_id(self) -> str | None:
        business_id = self.business.get("id")
        return str(business_id) if business_id is not None else None

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def setdefault(self, key: str, value: Any) -> Any:
        return self._data.setdefault(key, deepcopy(value))

    def step_result(self, node_id: str) -> dict[str, Any] | None:
        return self._data.get(self.step_key(node_id))

    def merge_step(self, node_id: str, fragment: Mapping[str, Any]) -> None:
        """Record a node's result; existing keys are never removed."""

        self._data[self.step_key(node_id)] = dict(fragment)

    def resolve(self, field: str) -> Any:
        return resolve_field(self._data, field)

    def render(self, template: str | None) -> str | None:
        return interpolate(template, self._data)

    def as_dict(self) -> dict[str, Any]:
        return deepcopy(self._data)
