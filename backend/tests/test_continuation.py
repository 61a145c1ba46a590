"""Tests for the batch continuation strategies."""

from __future__ import annotations

import pytest
import requests

from backend.bizflow.automation import continuation as continuation_module
from backend.bizflow.automation.continuation import (
    HttpContinuation,
    InlineContinuation,
    JobContinuation,
    continuation_from_config,
)
from backend.bizflow.automation.engine import build_engine
from backend.bizflow.models import ScheduledJob
from backend.bizflow.utils.time import as_utc

RUNTIME_URL = "http://runtime.internal/api/automation/runtime"


class RecordingPost:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def __call__(self, url, json=None, timeout=None):
        self.calls.append({"url": url, "json": json, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return None


def _not_called(run_id, node_id):
    raise AssertionError("inline invocation was not expected")


def _run(workflow_factory, run_factory):
    workflow, _ = workflow_factory([("trigger", "trigger", None, {})], [])
    return run_factory(workflow)


def test_http_continuation_posts_resume_request(app, clock, monkeypatch, workflow_factory, run_factory):
    run = _run(workflow_factory, run_factory)
    post = RecordingPost()
    monkeypatch.setattr(continuation_module.requests, "post", post)

    outcome = HttpContinuation(RUNTIME_URL, timeout=1.5).dispatch(run.id, "n2", clock(), _not_called)

    assert outcome is None
    assert post.calls == [
        {"url": RUNTIME_URL, "json": {"runId": run.id, "resumeFromNodeId": "n2"}, "timeout": 1.5}
    ]
    assert ScheduledJob.query.count() == 0


def test_http_continuation_read_timeout_counts_as_handed_off(
    app, clock, monkeypatch, workflow_factory, run_factory
):
    run = _run(workflow_factory, run_factory)
    monkeypatch.setattr(continuation_module.requests, "post", RecordingPost(requests.ReadTimeout()))

    HttpContinuation(RUNTIME_URL).dispatch(run.id, "n2", clock(), _not_called)

    assert ScheduledJob.query.count() == 0


@pytest.mark.parametrize(
    "error", [requests.ConnectionError("refused"), requests.ConnectTimeout(), requests.HTTPError()]
)
def test_http_continuation_falls_back_to_resume_job(
    app, clock, monkeypatch, workflow_factory, run_factory, error
):
    run = _run(workflow_factory, run_factory)
    monkeypatch.setattr(continuation_module.requests, "post", RecordingPost(error))

    HttpContinuation(RUNTIME_URL).dispatch(run.id, "n2", clock(), _not_called)

    jobs = ScheduledJob.query.filter_by(run_id=run.id).all()
    assert [(job.node_id, job.status) for job in jobs] == [("n2", "queued")]
    assert as_utc(jobs[0].execute_at) == clock()


def test_batch_limit_posts_continuation_for_next_node(
    engine_factory, workflow_factory, run_factory, monkeypatch
):
    post = RecordingPost()
    monkeypatch.setattr(continuation_module.requests, "post", post)
    engine = engine_factory(batch_size=2, continuation=HttpContinuation(RUNTIME_URL))
    workflow, ids = workflow_factory(
        [
            ("trigger", "trigger", None, {}),
            ("a1", "action", "create_task", {"title": "one"}),
            ("a2", "action", "create_task", {"title": "two"}),
            ("goal", "goal", None, {}),
        ],
        [("trigger", "a1", None), ("a1", "a2", None), ("a2", "goal", None)],
    )
    run = run_factory(workflow)

    result = engine.invoke(run.id)

    assert result.status == "running"
    assert [call["json"] for call in post.calls] == [
        {"runId": run.id, "resumeFromNodeId": ids["a2"]}
    ]
    assert ScheduledJob.query.filter_by(run_id=run.id, status="queued").count() == 0


@pytest.mark.parametrize(
    ("config", "expected"),
    [
        ({}, JobContinuation),
        ({"AUTOMATION_CONTINUATION": "job"}, JobContinuation),
        ({"AUTOMATION_CONTINUATION": "INLINE"}, InlineContinuation),
        ({"AUTOMATION_CONTINUATION": "http", "AUTOMATION_RUNTIME_URL": RUNTIME_URL}, HttpContinuation),
        ({"AUTOMATION_CONTINUATION": "http"}, JobContinuation),
        ({"AUTOMATION_CONTINUATION": "carrier-pigeon"}, JobContinuation),
    ],
)
def test_continuation_mode_selection(app, config, expected):
    assert type(continuation_from_config(config)) is expected


def test_build_engine_reads_continuation_mode(app):
    app.config["AUTOMATION_CONTINUATION"] = "inline"
    try:
        assert isinstance(build_engine(app).continuation, InlineContinuation)
    finally:
        app.config["AUTOMATION_CONTINUATION"] = "job"
    assert isinstance(build_engine(app).continuation, JobContinuation)
