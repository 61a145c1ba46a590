"""Tests for the business automation settings endpoints."""

from __future__ import annotations


def test_defaults_are_returned_for_unknown_business(client):
    response = client.get("/api/businesses/biz-9/automation-settings")

    assert response.status_code == 200
    body = response.get_json()
    assert body["businessHoursEnabled"] is False
    assert body["businessDays"] == [1, 2, 3, 4, 5]
    assert body["timezone"] == "UTC"
    assert body["automationsEnabled"] is True


def test_update_settings(client):
    response = client.put(
        "/api/businesses/biz-1/automation-settings",
        json={
            "businessHoursEnabled": True,
            "businessHoursStart": "08:30",
            "businessDays": [6, 1, 1],
            "timezone": "Europe/Berlin",
            "dedupeWindowMinutes": 15,
        },
    )

    assert response.status_code == 200
    body = response.get_json()
    assert body["businessHoursStart"] == "08:30"
    assert body["businessDays"] == [1, 6]

    stored = client.get("/api/businesses/biz-1/automation-settings").get_json()
    assert stored["timezone"] == "Europe/Berlin"
    assert stored["dedupeWindowMinutes"] == 15


def test_invalid_settings_are_rejected(client):
    response = client.put(
        "/api/businesses/biz-1/automation-settings",
        json={"quietHoursStart": "25:00", "timezone": "Nowhere/City", "businessDays": [7]},
    )

    assert response.status_code == 400
    assert len(response.get_json()["errors"]) == 3
    assert client.put("/api/businesses/biz-1/automation-settings", json=[1]).status_code == 400
