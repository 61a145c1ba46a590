from __future__ import annotations

import pathlib
import sys
import uuid
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
from sqlalchemy.pool import StaticPool

ROOT = pathlib.Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _load_dependencies():
    from bizflow import Config, create_app
    from backend.bizflow.extensions import db

    return Config, create_app, db


ConfigBase, create_app, db = _load_dependencies()

from backend.bizflow.automation.collaborators import Collaborators, SqlCrmStore  # noqa: E402
from backend.bizflow.automation.continuation import JobContinuation  # noqa: E402
from backend.bizflow.automation.engine import AutomationEngine  # noqa: E402
from backend.bizflow.models import (  # noqa: E402
    AutomationEvent,
    AutomationLog,
    AutomationRun,
    BusinessAutomationSettings,
    Contact,
    Lead,
    ScheduledJob,
    Task,
    Workflow,
    WorkflowEdge,
    WorkflowNode,
)
from backend.bizflow.utils.time import to_db  # noqa: E402

BUSINESS_ID = "biz-1"


class TestConfig(ConfigBase):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite+pysqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {
        "poolclass": StaticPool,
        "connect_args": {"check_same_thread": False},
    }
    CORS_ALLOWED_ORIGINS = "http://localhost"
    RATELIMIT_ENABLED = False
    RESEND_API_KEY = None
    AUTOMATION_CONTINUATION = "job"


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeMailer:
    def __init__(self):
        self.sent: list[dict[str, Any]] = []

    def send_email(self, to, subject, html, reply_to=None, sender=None, idempotency_key=None):
        self.sent.append(
            {
                "to": to,
                "subject": subject,
                "html": html,
                "reply_to": reply_to,
                "sender": sender,
                "idempotency_key": idempotency_key,
            }
        )
        return {"sent": True, "messageId": f"msg-{len(self.sent)}"}


class FakeSms:
    def __init__(self):
        self.sent: list[tuple[str, str]] = []

    def send_sms(self, to, message):
        self.sent.append((to, message))
        return {"sent": True}


class FakeHttp:
    def __init__(self, status: int = 200, error: Exception | None = None):
        self.status = status
        self.error = error
        self.calls: list[dict[str, Any]] = []

    def call(self, url, method, headers, body):
        self.calls.append({"url": url, "method": method, "headers": headers, "body": body})
        if self.error is not None:
            raise self.error
        return {"status": self.status, "ok": 200 <= self.status < 300}


@pytest.fixture(scope="module")
def app():
    app = create_app(TestConfig)
    ctx = app.app_context()
    ctx.push()
    yield app
    db.session.remove()
    ctx.pop()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture(autouse=True)
def cleanup_tables(app):
    yield

    db.session.rollback()
    for model in (
        AutomationLog,
        ScheduledJob,
        AutomationRun,
        AutomationEvent,
        WorkflowEdge,
        WorkflowNode,
        Workflow,
        BusinessAutomationSettings,
        Contact,
        Lead,
        Task,
    ):
        db.session.query(model).delete()
    db.session.commit()
    for key in ("bizflow.collaborators", "bizflow.clock", "bizflow.continuation"):
        app.extensions.pop(key, None)


@pytest.fixture()
def clock():
    # Wednesday
    return FakeClock(datetime(2024, 1, 10, 12, 0, tzinfo=UTC))


@pytest.fixture()
def mailer():
    return FakeMailer()


@pytest.fixture()
def http_client():
    return FakeHttp()


@pytest.fixture()
def collaborators(mailer, http_client):
    return Collaborators(crm=SqlCrmStore(), mailer=mailer, sms=FakeSms(), http=http_client)


@pytest.fixture()
def engine_factory(app, collaborators, clock):
    def factory(**overrides: Any) -> AutomationEngine:
        options: dict[str, Any] = {
            "collaborators": collaborators,
            "clock": clock,
            "continuation": JobContinuation(),
        }
        options.update(overrides)
        return AutomationEngine(**options)

    return factory


@pytest.fixture()
def engine(engine_factory):
    return engine_factory()


@pytest.fixture()
def install_fakes(app, collaborators, clock):
    """Make request handlers build engines with the test collaborators and clock."""

    app.extensions["bizflow.collaborators"] = collaborators
    app.extensions["bizflow.clock"] = clock
    return app


@pytest.fixture()
def workflow_factory(app):
    """Create a workflow from ``(ref, type, action, config)`` nodes and ``(from, to, key)`` edges.

    Returns the workflow and a mapping of refs to stored node ids.
    """

    def factory(nodes, edges, *, intent="lead.created", business_id=BUSINESS_ID, **fields):
        workflow = Workflow(
            business_id=business_id,
            name=fields.pop("name", f"Workflow {uuid.uuid4().hex[:8]}"),
            trigger_intent=intent,
            **fields,
        )
        ids = {ref: str(uuid.uuid4()) for ref, *_ in nodes}
        for order, (ref, node_type, action, config) in enumerate(nodes):
            workflow.nodes.append(
                WorkflowNode(
                    id=ids[ref],
                    node_type=node_type,
                    action_type=action,
                    label=ref,
                    config=config or {},
                    execution_order=order,
                )
            )
        for position, (source, target, key) in enumerate(edges):
            workflow.edges.append(
                WorkflowEdge(
                    from_node_id=ids[source],
                    to_node_id=ids[target],
                    condition_key=key,
                    position=position,
                )
            )
        db.session.add(workflow)
        db.session.commit()
        return workflow, ids

    return factory


@pytest.fixture()
def run_factory(app, clock):
    def factory(workflow, *, payload=None, contact_id=None, **fields):
        context = fields.pop(
            "context",
            {
                "intent": workflow.trigger_intent,
                "payload": payload or {},
                "business": {"id": workflow.business_id, "name": "Acme"},
            },
        )
        run = AutomationRun(
            workflow_id=workflow.id,
            contact_id=contact_id,
            context=context,
            started_at=to_db(clock()),
            **fields,
        )
        db.session.add(run)
        db.session.commit()
        return run

    return factory


@pytest.fixture()
def settings_factory(app):
    def factory(business_id=BUSINESS_ID, **fields):
        settings = BusinessAutomationSettings(business_id=business_id, **fields)
        db.session.add(settings)
        db.session.commit()
        return settings

    return factory
