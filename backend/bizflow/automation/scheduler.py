"""Persisted resume jobs and the consumer that replays them when due."""
from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from flask import current_app, has_app_context

from ..extensions import db
from ..models.job import ScheduledJob
from ..utils.time import to_db
from .errors import RunNotFoundError

RETRY_BACKOFF = timedelta(minutes=1)


def _logger() -> logging.Logger:
    if has_app_context():
        return current_app.logger
    return logging.getLogger(__name__)


def schedule_job(run_id: str, node_id: str, execute_at: datetime) -> ScheduledJob:
    """Queue a resume of ``run_id`` on ``node_id`` at ``execute_at``."""

    job = ScheduledJob(
        run_id=run_id,
        node_id=node_id,
        status="queued",
        execute_at=to_db(execute_at),
    )
    db.session.add(job)
    db.session.commit()
    return job


def cancel_pending_jobs(run_id: str) -> int:
    """Cancel queued jobs of a run; returns how many were cancelled."""

    count = (
        ScheduledJob.query.filter_by(run_id=run_id, status="queued")
        .update({"status": "cancelled"}, synchronize_session=False)
    )
    db.session.commit()
    return count


def due_jobs(now: datetime, limit: int = 50) -> list[ScheduledJob]:
    return (
        ScheduledJob.query.filter(ScheduledJob.status == "queued")
        .filter(ScheduledJob.execute_at <= to_db(now))
        .order_by(ScheduledJob.execute_at.asc(), ScheduledJob.created_at.asc())
        .limit(limit)
        .all()
    )


def process_due_jobs(
    now: datetime,
    invoke: Callable[[str, str], Any],
    limit: int = 50,
) -> list[dict[str, Any]]:
    """Invoke the runtime for each due job and record the outcome on the job.

    Failed invocations are requeued with a linear back-off until the job
    runs out of attempts.
    """

    logger = _logger()
    results: list[dict[str, Any]] = []

    for job in due_jobs(now, limit):
        # An earlier job of the same run may have superseded this one.
        if job.status != "queued":
            continue

        job.status = "processing"
        job.attempts = (job.attempts or 0) + 1
        db.session.commit()

        try:
            outcome = invoke(job.run_id, job.node_id)
        except RunNotFoundError as exc:
            job.status = "failed"
            job.last_error = f"run not found: {exc}"
            job.processed_at = to_db(now)
            db.session.commit()
            results.append({"jobId": job.id, "status": "failed", "error": job.last_error})
            continue
        except Exception as exc:
            db.session.rollback()
            logger.exception("Resume job %s for run %s failed", job.id, job.run_id)
            job.last_error = str(exc)
            if job.attempts < job.max_attempts:
                job.status = "queued"
                job.execute_at = to_db(now + RETRY_BACKOFF * job.attempts)
            else:
                job.status = "failed"
                job.processed_at = to_db(now)
            db.session.commit()
            results.append({"jobId": job.id, "status": job.status, "error": job.last_error})
            continue

        job.status = "completed"
        job.processed_at = to_db(now)
        db.session.commit()
        results.append(
            {
                "jobId": job.id,
                "runId": job.run_id,
                "status": "completed",
                "runStatus": getattr(outcome, "status", None),
            }
        )

    return results
