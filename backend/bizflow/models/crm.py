"""The slice of the CRM schema that automation actions read and write."""

from __future__ import annotations

import uuid
from datetime import datetime

from ..extensions import db


def _new_id() -> str:
    return str(uuid.uuid4())


class Contact(db.Model):
    """A CRM contact."""

    __tablename__ = "crm_contacts"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    business_id = db.Column(db.String(36), nullable=True, index=True)
    email = db.Column(db.String(255), nullable=True)
    first_name = db.Column(db.String(120), nullable=True)
    last_name = db.Column(db.String(120), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    tags = db.Column(db.JSON, nullable=False, default=list)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(
        db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class Lead(db.Model):
    """A lead in a business pipeline."""

    __tablename__ = "crm_leads"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    business_id = db.Column(db.String(36), nullable=True, index=True)
    email = db.Column(db.String(255), nullable=True)
    name = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    status = db.Column(db.String(64), nullable=False, default="new")
    source = db.Column(db.String(64), nullable=True)
    source_ref = db.Column(db.String(120), nullable=True, unique=True)
    lead_metadata = db.Column("metadata", db.JSON, nullable=False, default=dict)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(
        db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class Task(db.Model):
    """A follow-up task created for the business owner."""

    __tablename__ = "tasks"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    business_id = db.Column(db.String(36), nullable=True, index=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(32), nullable=False, default="todo")
    project_id = db.Column(db.String(36), nullable=True)
    source_ref = db.Column(db.String(120), nullable=True, unique=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
