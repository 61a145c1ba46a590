"""Tests for event ingestion."""

from __future__ import annotations

from backend.bizflow.extensions import db
from backend.bizflow.models import AutomationEvent, AutomationRun

BUSINESS_ID = "biz-1"

FLOW = (
    [("trigger", "trigger", None, {}), ("task", "action", "create_task", {"title": "Call"})],
    [("trigger", "task", None)],
)


def _post(client, **body):
    payload = {"businessId": BUSINESS_ID, "intent": "lead.created", "payload": {"name": "Ada"}}
    payload.update(body)
    return client.post("/api/automation/events", json=payload)


def test_event_validation(client):
    assert client.post("/api/automation/events", json={"intent": "x"}).status_code == 400
    assert client.post("/api/automation/events", json={"businessId": "b"}).status_code == 400
    assert _post(client, payload=["not", "an", "object"]).status_code == 400


def test_event_rejects_non_string_identifiers(client):
    for body in ({"businessId": 123, "intent": "lead.created"}, {"businessId": "b", "intent": ["x"]}):
        response = client.post("/api/automation/events", json=body)
        assert response.status_code == 400
        assert "error" in response.get_json()
    assert client.post("/api/automation/events", json=["not", "an", "object"]).status_code == 400
    assert AutomationEvent.query.count() == 0


def test_event_starts_matching_workflows_by_priority(client, install_fakes, workflow_factory):
    low, _ = workflow_factory(*FLOW, priority=90)
    high, _ = workflow_factory(*FLOW, priority=10)
    workflow_factory(*FLOW, intent="booking.created")
    workflow_factory(*FLOW, is_active=False)

    response = _post(client)

    assert response.status_code == 202
    body = response.get_json()
    assert [entry["workflowId"] for entry in body["triggered"]] == [high.id, low.id]
    assert all(entry["status"] == "completed" for entry in body["triggered"])

    run = AutomationRun.query.filter_by(workflow_id=high.id).one()
    assert run.idempotency_key == f"{body['eventId']}:{high.id}"
    assert run.context["payload"] == {"name": "Ada"}
    assert db.session.get(AutomationEvent, body["eventId"]).processed is True


def test_duplicate_dedupe_key_does_not_trigger_again(client, install_fakes, workflow_factory):
    workflow_factory(*FLOW)

    first = _post(client, dedupeKey="form-42")
    second = _post(client, dedupeKey="form-42")

    assert first.status_code == 202
    assert second.status_code == 200
    assert second.get_json() == {
        "eventId": first.get_json()["eventId"],
        "duplicate": True,
        "triggered": [],
    }
    assert AutomationRun.query.count() == 1


def test_disabled_automations_trigger_nothing(client, install_fakes, workflow_factory, settings_factory):
    settings_factory(automations_enabled=False)
    workflow_factory(*FLOW)

    body = _post(client).get_json()

    assert body["triggered"] == []
    assert body["reason"] == "Automations disabled"
    assert AutomationRun.query.count() == 0


def test_dedupe_window_suppresses_repeated_intents(client, install_fakes, workflow_factory, settings_factory):
    settings_factory(dedupe_window_minutes=30)
    workflow_factory(*FLOW)

    _post(client, contactId="c-1")
    repeated = _post(client, contactId="c-1").get_json()
    other_contact = _post(client, contactId="c-2").get_json()

    assert repeated["reason"] == "Within dedupe window"
    assert len(other_contact["triggered"]) == 1
    assert AutomationRun.query.count() == 2
