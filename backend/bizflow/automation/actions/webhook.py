"""Outbound webhook action."""
from __future__ import annotations

from typing import Any

import requests

from ..collaborators import Unavailable
from ..context import RunContext
from ..graph import Node
from .base import ActionEnv


def call_webhook(node: Node, context: RunContext, env: ActionEnv) -> dict[str, Any]:
    """Call the configured URL; any HTTP status counts as a completed call."""

    config = node.config
    url = context.render(config.get("url"))
    if not url:
        return {"called": False, "reason": "No URL configured"}

    http = env.collaborators.capability("http")
    if isinstance(http, Unavailable):
        return {"called": False, "reason": http.reason, "url": url}

    extra = config.get("payload")
    body = {
        **(extra if isinstance(extra, dict) else {}),
        "context": context.as_dict(),
        "timestamp": env.now.isoformat(),
    }
    headers = {"Content-Type": "application/json"}
    if isinstance(config.get("headers"), dict):
        headers.update({str(key): str(value) for key, value in config["headers"].items()})
    if env.idempotency_key:
        headers.setdefault("Idempotency-Key", env.idempotency_key)
    method = str(config.get("method") or "POST").upper()

    try:
        response = http.call(url, method, headers, body)
    except requests.RequestException as exc:
        return {"called": False, "reason": str(exc), "url": url}

    return {
        "called": True,
        "url": url,
        "status": response.get("status"),
        "success": bool(response.get("ok")),
    }
