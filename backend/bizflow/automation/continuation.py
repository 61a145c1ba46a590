"""Ways for a run to continue once an invocation has used up its batch."""
from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any, Protocol

import requests
from flask import current_app, has_app_context

from .scheduler import schedule_job

Invoke = Callable[[str, str], Any]


def _logger() -> logging.Logger:
    if has_app_context():
        return current_app.logger
    return logging.getLogger(__name__)


class Continuation(Protocol):
    """Hand ``(run_id, node_id)`` to the next invocation.

    Returns the outcome of that invocation when it happened synchronously,
    otherwise ``None``.
    """

    def dispatch(self, run_id: str, node_id: str, now: datetime, invoke: Invoke) -> Any: ...


class JobContinuation:
    """Enqueue an immediately due resume job for the job consumer."""

    def dispatch(self, run_id: str, node_id: str, now: datetime, invoke: Invoke) -> None:
        schedule_job(run_id, node_id, now)
        return None


class HttpContinuation:
    """POST the continuation to the runtime endpoint of this service."""

    def __init__(self, url: str, timeout: float = 2.0, fallback: Continuation | None = None):
        self._url = url
        self._timeout = timeout
        self._fallback = fallback or JobContinuation()

    def dispatch(self, run_id: str, node_id: str, now: datetime, invoke: Invoke) -> None:
        body = {"runId": run_id, "resumeFromNodeId": node_id}
        try:
            requests.post(self._url, json=body, timeout=self._timeout)
        except requests.ReadTimeout:
            # The request reached the runtime, which keeps working on it.
            _logger().info("Continuation for run %s handed off to %s", run_id, self._url)
        except requests.RequestException as exc:
            _logger().warning(
                "Continuation request for run %s failed (%s); queueing a resume job", run_id, exc
            )
            return self._fallback.dispatch(run_id, node_id, now, invoke)
        return None


class InlineContinuation:
    """Run the next batch in the current process."""

    def dispatch(self, run_id: str, node_id: str, now: datetime, invoke: Invoke) -> Any:
        return invoke(run_id, node_id)


def continuation_from_config(config: dict[str, Any]) -> Continuation:
    mode = (config.get("AUTOMATION_CONTINUATION") or "job").lower()
    if mode == "inline":
        return InlineContinuation()
    if mode == "http":
        url = config.get("AUTOMATION_RUNTIME_URL")
        if not url:
            _logger().warning("AUTOMATION_RUNTIME_URL is not set; using job continuation")
            return JobContinuation()
        return HttpContinuation(url, timeout=float(config.get("AUTOMATION_HTTP_TIMEOUT", 2)))
    return JobContinuation()
