"""Batch-limited execution of automation runs.

One call to :meth:`AutomationEngine.invoke` processes at most a batch of
nodes of a single run, persisting after every step. Work that remains after
the batch is handed to a :class:`~.continuation.Continuation`; waits and
gated messages pause the run and leave a scheduled job behind.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from flask import Flask, current_app, has_app_context

from ..extensions import db
from ..models.run import COMPLETED, FAILED, PAUSED, RUNNING, AutomationRun
from ..models.settings import BusinessAutomationSettings
from ..models.workflow import Workflow
from ..utils.time import as_utc, format_iso, utc_now
from . import gating
from .actions import ActionEnv
from .audit import AuditLogger
from .collaborators import Collaborators, default_collaborators
from .context import RunContext
from .continuation import Continuation, JobContinuation, continuation_from_config
from .errors import GraphValidationError, RunNotFoundError
from .executor import NodeExecutor
from .graph import FALLBACK_FIRST, Node, WorkflowGraph, load_graph
from .ledger import RunLedger, active_runtime_seconds
from .scheduler import cancel_pending_jobs, schedule_job

MAX_STEPS_ERROR = "Max steps exceeded - possible infinite loop"
MAX_RUNTIME_ERROR = "Max runtime exceeded"

CONTINUE = "continue"
PAUSE = "pause"
DONE = "done"


def _logger() -> logging.Logger:
    if has_app_context():
        return current_app.logger
    return logging.getLogger(__name__)


@dataclass(frozen=True)
class InvocationResult:
    success: bool
    run_id: str
    status: str
    steps_processed: int = 0
    message: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "success": self.success,
            "runId": self.run_id,
            "status": self.status,
            "stepsProcessed": self.steps_processed,
        }
        if self.message:
            payload["message"] = self.message
        if self.error:
            payload["error"] = self.error
        return payload


@dataclass(frozen=True)
class StepPlan:
    """What happens after a node has run."""

    action: str
    next_node_id: str | None = None
    resume_at: datetime | None = None


def plan_next(
    graph: WorkflowGraph,
    node: Node,
    result: dict[str, Any],
    now: datetime,
    fallback: str = FALLBACK_FIRST,
) -> StepPlan:
    if node.type == "goal":
        return StepPlan(DONE)

    if node.type == "wait":
        successor = graph.next_node_id(node.id, None, fallback)
        if successor is None:
            return StepPlan(DONE)
        delay = timedelta(seconds=float(result.get("delaySeconds") or 0))
        return StepPlan(PAUSE, successor, now + delay)

    branch_key = result.get("branchKey")
    successor = graph.next_node_id(node.id, branch_key, fallback)
    if successor is None:
        return StepPlan(DONE)
    return StepPlan(CONTINUE, successor)


class AutomationEngine:
    """Drive runs through their workflow graph."""

    def __init__(
        self,
        collaborators: Collaborators,
        executor: NodeExecutor | None = None,
        audit: AuditLogger | None = None,
        ledger: RunLedger | None = None,
        clock: Callable[[], datetime] = utc_now,
        batch_size: int = 10,
        max_steps_default: int = 100,
        max_runtime: timedelta = timedelta(minutes=30),
        runtime_excludes_pauses: bool = False,
        fallback: str = FALLBACK_FIRST,
        continuation: Continuation | None = None,
        graph_loader: Callable[[str], WorkflowGraph] = load_graph,
        settings_loader: Callable[[str], BusinessAutomationSettings | None] | None = None,
    ):
        self.collaborators = collaborators
        self.audit = audit or AuditLogger()
        self.executor = executor or NodeExecutor(audit=self.audit)
        self.ledger = ledger or RunLedger()
        self.clock = clock
        self.batch_size = max(int(batch_size), 1)
        self.max_steps_default = int(max_steps_default)
        self.max_runtime = max_runtime
        self.runtime_excludes_pauses = runtime_excludes_pauses
        self.fallback = fallback
        self.continuation = continuation or JobContinuation()
        self.graph_loader = graph_loader
        self.settings_loader = settings_loader or _load_settings

    def invoke(self, run_id: str, resume_from_node_id: str | None = None) -> InvocationResult:
        """Process the next batch of ``run_id``.

        Raises ``RunNotFoundError`` when the run does not exist. Every other
        outcome, including failures of the run itself, is reported through the
        returned result.
        """

        now = self.clock()
        run = self.ledger.get(run_id)
        if run is None:
            raise RunNotFoundError(run_id)

        if run.is_terminal:
            return InvocationResult(
                True, run.id, run.status, message=f"Run already {run.status}"
            )

        paused_until = as_utc(run.paused_until)
        if run.status == PAUSED and paused_until is not None and paused_until > now:
            return InvocationResult(
                True, run.id, PAUSED, message=f"Run paused until {format_iso(paused_until)}"
            )

        if (run.steps_completed or 0) >= self._max_steps(run):
            return self._fail(run, None, MAX_STEPS_ERROR, 0)

        runtime = active_runtime_seconds(run, now, self.runtime_excludes_pauses)
        if runtime > self.max_runtime.total_seconds():
            return self._fail(run, None, MAX_RUNTIME_ERROR, 0)

        workflow = db.session.get(Workflow, run.workflow_id)
        if workflow is None:
            return self._fail(run, None, f"Workflow {run.workflow_id} not found", 0)

        graph = self.graph_loader(run.workflow_id)
        try:
            warnings = graph.validate(self.executor.known_kinds)
        except GraphValidationError as exc:
            return self._fail(run, None, f"Invalid workflow graph: {exc}", 0)
        for warning in warnings:
            self.audit.warn(run.id, None, warning)

        start_id = resume_from_node_id or run.current_node_id
        node = graph.get(start_id) if start_id else graph.entry_node()
        if start_id and node is None:
            return self._fail(run, None, f"Node {start_id} not found in workflow", 0)

        resuming = run.status == PAUSED
        self.ledger.start(run, now)
        cancel_pending_jobs(run.id)

        if node is None:
            self.ledger.complete(run, now)
            self.audit.info(run.id, None, "Workflow has no nodes")
            return InvocationResult(True, run.id, COMPLETED, message="Workflow has no nodes")

        self.audit.info(
            run.id,
            node.id,
            "Run resumed" if resuming else "Run started",
            workflowId=workflow.id,
            fromNode=node.id,
        )

        context = self._prepare_context(run, workflow)
        settings = self.settings_loader(workflow.business_id)
        return self._run_batch(run, graph, node, context, settings)

    def _max_steps(self, run: AutomationRun) -> int:
        return int(run.max_steps or self.max_steps_default)

    def _prepare_context(self, run: AutomationRun, workflow: Workflow) -> RunContext:
        context = RunContext(run.context)
        context.setdefault("business", {"id": workflow.business_id})
        if run.contact_id and not context.contact:
            contact = self.collaborators.crm.fetch("contact", run.contact_id)
            if contact:
                context.setdefault("contact", contact)
        return context

    def _run_batch(
        self,
        run: AutomationRun,
        graph: WorkflowGraph,
        node: Node,
        context: RunContext,
        settings: BusinessAutomationSettings | None,
    ) -> InvocationResult:
        policy = gating.GatingPolicy.from_settings(settings)
        max_steps = self._max_steps(run)
        processed = 0

        while True:
            # Status is re-read after every commit, so a cancellation made by
            # another request is honoured here.
            if run.status != RUNNING:
                return InvocationResult(True, run.id, run.status, processed)

            if processed >= self.batch_size:
                self.ledger.save_progress(run, context, node.id)
                self.audit.info(run.id, node.id, "Batch limit reached, continuing", processed=processed)
                return self._continue(run, node.id, processed)

            if node.type != "goal" and run.steps_completed >= max_steps:
                return self._fail(run, node.id, MAX_STEPS_ERROR, processed)

            now = self.clock()
            decision = gating.evaluate(policy, node, now)
            if not decision.allowed:
                self.ledger.pause(run, decision.resume_at, node.id, now)
                schedule_job(run.id, node.id, decision.resume_at)
                self.audit.info(
                    run.id,
                    node.id,
                    f"Paused {decision.reason}",
                    resumeAt=format_iso(decision.resume_at),
                )
                return InvocationResult(
                    True,
                    run.id,
                    PAUSED,
                    processed,
                    message=f"Paused until {format_iso(decision.resume_at)}",
                )

            env = ActionEnv(
                collaborators=self.collaborators,
                settings=settings,
                run_id=run.id,
                now=now,
                idempotency_key=f"{run.id}:{node.id}:{run.steps_completed}",
            )
            try:
                result = self.executor.execute(node, context, env)
            except Exception as exc:
                db.session.rollback()
                _logger().exception("Node %s of run %s failed", node.id, run.id)
                message = f"Node {node.display_name} failed: {exc}"
                return self._fail(run, node.id, message, processed)

            context.merge_step(node.id, result)

            if node.type == "goal":
                self.ledger.complete(run, now, context, node.id)
                self.audit.info(run.id, node.id, f"Goal reached: {node.display_name}")
                return InvocationResult(True, run.id, COMPLETED, processed)

            plan = plan_next(graph, node, result, now, self.fallback)
            self.ledger.record_step(run, context, plan.next_node_id or node.id)
            processed += 1
            self.audit.info(run.id, node.id, f"Executed {node.display_name}", result=result)

            if plan.action == DONE:
                self.ledger.complete(run, now)
                self.audit.info(run.id, node.id, "Run completed")
                return InvocationResult(True, run.id, COMPLETED, processed)

            if plan.action == PAUSE:
                self.ledger.pause(run, plan.resume_at, plan.next_node_id, now)
                schedule_job(run.id, plan.next_node_id, plan.resume_at)
                self.audit.info(
                    run.id,
                    node.id,
                    "Waiting before next step",
                    resumeAt=format_iso(plan.resume_at),
                    nextNodeId=plan.next_node_id,
                )
                return InvocationResult(
                    True,
                    run.id,
                    PAUSED,
                    processed,
                    message=f"Paused until {format_iso(plan.resume_at)}",
                )

            next_node = graph.get(plan.next_node_id)
            if next_node is None:
                return self._fail(
                    run, node.id, f"Node {plan.next_node_id} not found in workflow", processed
                )
            node = next_node

    def _continue(self, run: AutomationRun, node_id: str, processed: int) -> InvocationResult:
        outcome = self.continuation.dispatch(run.id, node_id, self.clock(), self.invoke)
        if outcome is None:
            return InvocationResult(
                True, run.id, RUNNING, processed, message="Continuing in next invocation"
            )
        return InvocationResult(
            outcome.success,
            run.id,
            outcome.status,
            processed + outcome.steps_processed,
            message=outcome.message,
            error=outcome.error,
        )

    def _fail(
        self, run: AutomationRun, node_id: str | None, message: str, processed: int
    ) -> InvocationResult:
        self.ledger.fail(run, self.clock(), message)
        self.audit.error(run.id, node_id, message)
        return InvocationResult(False, run.id, FAILED, processed, error=message)

    def cancel(self, run_id: str) -> AutomationRun:
        run = self.ledger.get(run_id)
        if run is None:
            raise RunNotFoundError(run_id)
        self.ledger.cancel(run, self.clock())
        cancel_pending_jobs(run.id)
        self.audit.info(run.id, None, "Run cancelled")
        return run


def _load_settings(business_id: str) -> BusinessAutomationSettings | None:
    return db.session.get(BusinessAutomationSettings, business_id)


def build_engine(app: Flask | None = None) -> AutomationEngine:
    """Create an engine wired with the collaborators and settings of ``app``.

    Tests register replacements under ``app.extensions["bizflow.collaborators"]``
    and ``app.extensions["bizflow.clock"]``.
    """

    app = app or current_app._get_current_object()
    config = app.config
    collaborators = app.extensions.get("bizflow.collaborators") or default_collaborators(app)
    clock = app.extensions.get("bizflow.clock") or utc_now
    return AutomationEngine(
        collaborators=collaborators,
        clock=clock,
        batch_size=int(config.get("AUTOMATION_BATCH_SIZE", 10)),
        max_steps_default=int(config.get("AUTOMATION_MAX_STEPS_DEFAULT", 100)),
        max_runtime=timedelta(minutes=float(config.get("AUTOMATION_MAX_RUNTIME_MINUTES", 30))),
        runtime_excludes_pauses=bool(config.get("AUTOMATION_RUNTIME_EXCLUDES_PAUSES", False)),
        fallback=config.get("AUTOMATION_EDGE_FALLBACK", FALLBACK_FIRST),
        continuation=app.extensions.get("bizflow.continuation")
        or continuation_from_config(config),
    )
