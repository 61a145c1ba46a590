"""Run ledger: the only place run status and progress are mutated."""
from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..models.run import (
    CANCELLED,
    COMPLETED,
    FAILED,
    PAUSED,
    PENDING,
    RUNNING,
    AutomationRun,
)
from ..utils.time import as_utc, to_db
from .context import RunContext
from .errors import InvalidTransitionError

_TRANSITIONS: dict[str, frozenset[str]] = {
    PENDING: frozenset({RUNNING, CANCELLED, FAILED}),
    RUNNING: frozenset({RUNNING, PAUSED, COMPLETED, FAILED, CANCELLED}),
    PAUSED: frozenset({RUNNING, CANCELLED, FAILED}),
}


def can_transition(current: str, target: str) -> bool:
    return target in _TRANSITIONS.get(current, frozenset())


def active_runtime_seconds(
    run: AutomationRun, now: datetime, exclude_pauses: bool = False
) -> float:
    """Wall-clock seconds since the run started.

    With ``exclude_pauses`` the time spent paused, including a pause that is
    still in effect, is not counted.
    """

    started_at = as_utc(run.started_at) or now
    elapsed = (now - started_at).total_seconds()
    if not exclude_pauses:
        return max(elapsed, 0.0)
    elapsed -= run.paused_seconds or 0.0
    paused_at = as_utc(run.paused_at)
    if run.status == PAUSED and paused_at is not None:
        elapsed -= max((now - paused_at).total_seconds(), 0.0)
    return max(elapsed, 0.0)


class RunLedger:
    """Persist run state transitions, committing after every change."""

    def get(self, run_id: str) -> AutomationRun | None:
        return db.session.get(AutomationRun, run_id)

    def _transition(self, run: AutomationRun, target: str) -> None:
        if not can_transition(run.status, target):
            raise InvalidTransitionError(f"run {run.id}: {run.status} -> {target} is not allowed")
        run.status = target

    def start(self, run: AutomationRun, now: datetime) -> None:
        paused_at = as_utc(run.paused_at)
        if run.status == PAUSED and paused_at is not None:
            run.paused_seconds = (run.paused_seconds or 0.0) + max(
                (now - paused_at).total_seconds(), 0.0
            )
        self._transition(run, RUNNING)
        run.paused_at = None
        run.paused_until = None
        db.session.commit()

    def record_step(
        self, run: AutomationRun, context: RunContext, next_node_id: str | None
    ) -> None:
        run.context = context.as_dict()
        run.steps_completed = (run.steps_completed or 0) + 1
        run.current_node_id = next_node_id
        db.session.commit()

    def save_progress(
        self, run: AutomationRun, context: RunContext, current_node_id: str | None
    ) -> None:
        run.context = context.as_dict()
        run.current_node_id = current_node_id
        db.session.commit()

    def pause(
        self, run: AutomationRun, until: datetime, node_id: str, now: datetime
    ) -> None:
        self._transition(run, PAUSED)
        run.paused_at = to_db(now)
        run.paused_until = to_db(until)
        run.current_node_id = node_id
        db.session.commit()

    def complete(
        self,
        run: AutomationRun,
        now: datetime,
        context: RunContext | None = None,
        last_node_id: str | None = None,
    ) -> None:
        self._transition(run, COMPLETED)
        if context is not None:
            run.context = context.as_dict()
        if last_node_id is not None:
            run.current_node_id = last_node_id
        run.completed_at = to_db(now)
        run.error_message = None
        db.session.commit()

    def fail(self, run: AutomationRun, now: datetime, message: str) -> None:
        self._transition(run, FAILED)
        run.error_message = message
        run.completed_at = to_db(now)
        db.session.commit()

    def cancel(self, run: AutomationRun, now: datetime) -> None:
        self._transition(run, CANCELLED)
        run.completed_at = to_db(now)
        db.session.commit()
