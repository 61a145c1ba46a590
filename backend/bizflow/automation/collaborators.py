"""Capability interfaces the runtime depends on, and their default implementations.

The runtime only talks to the outside world through these contracts. The
``crm`` capability is required; ``mailer``, ``sms`` and ``http`` are optional
and resolve to an :class:`Unavailable` marker when not configured.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

import requests
from flask import Flask
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models.crm import Contact, Lead, Task
from .errors import AutomationError

REQUIRED_CAPABILITIES = ("crm",)
OPTIONAL_CAPABILITIES = ("mailer", "sms", "http")


class Mailer(Protocol):
    def send_email(
        self,
        to: str,
        subject: str,
        html: str,
        reply_to: str | None = None,
        sender: str | None = None,
        idempotency_key: str | None = None,
    ) -> dict[str, Any]: ...


class SmsSender(Protocol):
    def send_sms(self, to: str, message: str) -> dict[str, Any]: ...


class CrmStore(Protocol):
    def upsert(
        self, entity: str, fields: dict[str, Any], match: dict[str, Any] | None = None
    ) -> dict[str, Any]: ...

    def fetch(self, entity: str, record_id: str) -> dict[str, Any] | None: ...


class HttpClient(Protocol):
    def call(
        self, url: str, method: str, headers: dict[str, str], body: Any
    ) -> dict[str, Any]: ...


@dataclass(frozen=True)
class Unavailable:
    """Marker returned for an optional capability that is not configured."""

    capability: str
    reason: str


@dataclass
class Collaborators:
    crm: CrmStore | None = None
    mailer: Mailer | None = None
    sms: SmsSender | None = None
    http: HttpClient | None = None

    def __post_init__(self) -> None:
        missing = [name for name in REQUIRED_CAPABILITIES if getattr(self, name) is None]
        if missing:
            raise AutomationError(f"missing required capabilities: {', '.join(missing)}")

    def capability(self, name: str) -> Any:
        if name not in REQUIRED_CAPABILITIES + OPTIONAL_CAPABILITIES:
            raise AutomationError(f"unknown capability {name!r}")
        implementation = getattr(self, name)
        if implementation is None:
            return Unavailable(capability=name, reason=f"{name} not configured")
        return implementation


class ResendMailer:
    """Send e-mail through a Resend-compatible HTTP API."""

    def __init__(self, api_key: str, api_url: str, default_sender: str, timeout: float = 10.0):
        self._api_key = api_key
        self._api_url = api_url
        self._default_sender = default_sender
        self._timeout = timeout

    def send_email(
        self,
        to: str,
        subject: str,
        html: str,
        reply_to: str | None = None,
        sender: str | None = None,
        idempotency_key: str | None = None,
    ) -> dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key
        body: dict[str, Any] = {
            "from": sender or self._default_sender,
            "to": [to],
            "subject": subject,
            "html": html,
        }
        if reply_to:
            body["reply_to"] = reply_to

        try:
            response = requests.post(
                self._api_url, json=body, headers=headers, timeout=self._timeout
            )
        except requests.RequestException as exc:
            return {"sent": False, "reason": str(exc)}

        if not response.ok:
            return {"sent": False, "reason": response.text or f"HTTP {response.status_code}"}

        try:
            message_id = response.json().get("id")
        except ValueError:
            message_id = None
        return {"sent": True, "messageId": message_id}


class RequestsHttpClient:
    """Outbound HTTP calls for webhook nodes."""

    def __init__(self, timeout: float = 10.0):
        self._timeout = timeout

    def call(self, url: str, method: str, headers: dict[str, str], body: Any) -> dict[str, Any]:
        response = requests.request(
            method.upper(),
            url,
            headers=headers,
            data=json.dumps(body, default=str),
            timeout=self._timeout,
        )
        return {"status": response.status_code, "ok": response.ok}


_ENTITIES: dict[str, type[db.Model]] = {
    "contact": Contact,
    "lead": Lead,
    "task": Task,
}


def _serialize_record(record: db.Model) -> dict[str, Any]:
    data: dict[str, Any] = {}
    for attribute in sa_inspect(record).mapper.column_attrs:
        value = getattr(record, attribute.key, None)
        if isinstance(value, datetime):
            value = value.isoformat() + "Z"
        data[attribute.key] = value
    return data


class SqlCrmStore:
    """CRM persistence backed by the application database.

    ``upsert`` updates the first row matching ``match`` and otherwise inserts;
    when no match is given a row is always inserted.
    """

    def _model(self, entity: str) -> type[db.Model]:
        try:
            return _ENTITIES[entity]
        except KeyError as exc:
            raise AutomationError(f"unknown CRM entity {entity!r}") from exc

    def fetch(self, entity: str, record_id: str) -> dict[str, Any] | None:
        record = db.session.get(self._model(entity), record_id)
        return _serialize_record(record) if record is not None else None

    def upsert(
        self, entity: str, fields: dict[str, Any], match: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        model = self._model(entity)
        record = None
        if match:
            record = model.query.filter_by(**match).first()

        if record is None:
            record = model(**{**(match or {}), **fields})
            db.session.add(record)
        else:
            for key, value in fields.items():
                setattr(record, key, value)

        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            if not match:
                raise
            record = model.query.filter_by(**match).first()
            if record is None:
                raise
            for key, value in fields.items():
                setattr(record, key, value)
            db.session.commit()
        return _serialize_record(record)


def default_collaborators(app: Flask) -> Collaborators:
    """Build the collaborators configured for ``app``."""

    timeout = float(app.config.get("AUTOMATION_HTTP_TIMEOUT", 10))
    mailer = None
    api_key = app.config.get("RESEND_API_KEY")
    if api_key:
        mailer = ResendMailer(
            api_key=api_key,
            api_url=app.config.get("RESEND_API_URL", "https://api.resend.com/emails"),
            default_sender=app.config.get("DEFAULT_SENDER_EMAIL", "onboarding@resend.dev"),
            timeout=timeout,
        )
    return Collaborators(
        crm=SqlCrmStore(),
        mailer=mailer,
        sms=None,
        http=RequestsHttpClient(timeout=timeout),
    )
