"""Messaging actions: e-mail and SMS."""
from __future__ import annotations

from typing import Any

from ..collaborators import Unavailable
from ..context import RunContext
from ..graph import Node
from .base import ActionEnv


def _sender(env: ActionEnv, context: RunContext) -> tuple[str | None, str | None]:
    settings = env.settings
    name = (settings.default_sender_name if settings else None) or context.business.get("name")
    email = settings.default_sender_email if settings else None
    if email:
        return (f"{name} <{email}>" if name else email), email
    return None, None


def send_email(node: Node, context: RunContext, env: ActionEnv) -> dict[str, Any]:
    config = node.config
    to = context.render(
        config.get("to") or context.contact.get("email") or context.payload.get("email")
    )
    subject = context.render(config.get("subject") or "Message from {{business.name}}")
    body = context.render(config.get("body") or config.get("html") or "")

    if not to:
        return {"sent": False, "reason": "No recipient email"}

    mailer = env.collaborators.capability("mailer")
    if isinstance(mailer, Unavailable):
        return {"sent": False, "reason": "Email not configured", "to": to}

    sender, reply_to = _sender(env, context)
    result = mailer.send_email(
        to,
        subject or "",
        body or "",
        reply_to=config.get("replyTo") or reply_to,
        sender=sender,
        idempotency_key=env.idempotency_key,
    )
    return {**result, "to": to, "subject": subject}


def send_sms(node: Node, context: RunContext, env: ActionEnv) -> dict[str, Any]:
    config = node.config
    to = context.render(
        config.get("to") or context.contact.get("phone") or context.payload.get("phone")
    )
    message = context.render(config.get("message") or "")

    if not to:
        return {"sent": False, "reason": "No recipient phone"}

    sms = env.collaborators.capability("sms")
    if isinstance(sms, Unavailable):
        return {"sent": False, "reason": "SMS not configured", "to": to, "message": message}

    result = sms.send_sms(to, message or "")
    return {**result, "to": to, "message": message}
