"""Tests for the workflow persistence REST API."""

from __future__ import annotations

GRAPH = {
    "nodes": [
        {"id": "t", "type": "trigger", "label": "Lead created"},
        {"id": "c", "type": "condition", "config": {"field": "payload.source", "operator": "eq", "value": "web"}},
        {"id": "mail", "type": "action", "actionType": "send_email", "config": {"subject": "Hi"}},
        {"id": "g", "type": "goal"},
    ],
    "edges": [
        {"from": "t", "to": "c"},
        {"from": "c", "to": "mail", "conditionKey": "yes"},
        {"from": "c", "to": "g", "conditionKey": "no"},
        {"from": "mail", "to": "g"},
    ],
}


def _create(client, **overrides):
    payload = {"name": "Lead follow-up", "businessId": "biz-1", "triggerIntent": "lead.created", **GRAPH}
    payload.update(overrides)
    return client.post("/api/workflows", json=payload)


def test_workflow_roundtrip(client):
    create_response = _create(client)
    assert create_response.status_code == 201
    created = create_response.get_json()
    assert created["name"] == "Lead follow-up"
    assert [node["type"] for node in created["nodes"]] == ["trigger", "condition", "action", "goal"]
    assert "warnings" not in created

    node_ids = {node["label"] or node["type"]: node["id"] for node in created["nodes"]}
    branches = {edge["conditionKey"] for edge in created["edges"] if edge["from"] == node_ids["condition"]}
    assert branches == {"yes", "no"}

    list_response = client.get("/api/workflows?businessId=biz-1")
    assert list_response.status_code == 200
    assert [wf["id"] for wf in list_response.get_json()] == [created["id"]]

    detail = client.get(f"/api/workflows/{created['id']}")
    assert detail.status_code == 200
    assert len(detail.get_json()["edges"]) == 4


def test_workflow_requires_name_and_business(client):
    assert _create(client, name="").status_code == 400
    assert _create(client, businessId=None).status_code == 400
    assert _create(client, name=42).status_code == 400
    assert _create(client, businessId=["biz-1"]).status_code == 400
    assert client.post("/api/workflows", json=["not", "an", "object"]).status_code == 400


def test_workflow_name_must_be_unique_per_business(client):
    assert _create(client).status_code == 201
    assert _create(client, name="lead FOLLOW-UP").status_code == 409
    assert _create(client, businessId="biz-2").status_code == 201


def test_workflow_graph_is_validated(client):
    response = _create(
        client,
        edges=[{"from": "t", "to": "ghost"}],
    )
    assert response.status_code == 400
    assert "edge references unknown node ghost" in response.get_json()["errors"]

    invalid_type = _create(client, nodes=[{"id": "x", "type": "loop"}], edges=[])
    assert invalid_type.status_code == 400


def test_unknown_action_kind_is_a_warning(client):
    response = _create(
        client,
        nodes=[{"id": "t", "type": "trigger"}, {"id": "f", "type": "action", "actionType": "send_fax"}],
        edges=[{"from": "t", "to": "f"}],
    )
    assert response.status_code == 201
    assert response.get_json()["warnings"] == ["node f has unknown action 'send_fax'"]


def test_update_workflow_metadata(client):
    created = _create(client).get_json()

    response = client.put(
        f"/api/workflows/{created['id']}", json={"isActive": False, "priority": 5}
    )

    assert response.status_code == 200
    body = response.get_json()
    assert body["isActive"] is False
    assert body["priority"] == 5

    assert client.put("/api/workflows/missing", json={}).status_code == 404


def test_update_workflow_rejects_non_string_name(client):
    created = _create(client).get_json()

    assert client.put(f"/api/workflows/{created['id']}", json={"name": 7}).status_code == 400
    assert client.put(f"/api/workflows/{created['id']}", json=[1, 2]).status_code == 400
    assert client.get(f"/api/workflows/{created['id']}").get_json()["name"] == "Lead follow-up"
