"""Append-only audit trail for automation runs."""
from __future__ import annotations

import logging
from typing import Any

from flask import current_app, has_app_context
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models.logs import AutomationLog

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


def _logger() -> logging.Logger:
    if has_app_context():
        return current_app.logger
    return logging.getLogger(__name__)


class AuditLogger:
    """Persist per-step log entries and mirror them to the application log."""

    def log(
        self,
        run_id: str,
        node_id: str | None,
        level: str,
        message: str,
        data: dict[str, Any] | None = None,
    ) -> None:
        if not message:
            return

        logger = _logger()
        logger.log(
            _LEVELS.get(level, logging.INFO),
            "[automation-runtime] run=%s node=%s %s",
            run_id,
            node_id,
            message,
        )

        try:
            entry = AutomationLog(
                run_id=run_id,
                node_id=node_id,
                level=level if level in _LEVELS else "info",
                message=message,
                data=data or {},
            )
            db.session.add(entry)
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Failed to persist automation log entry for run %s", run_id)

    def info(self, run_id: str, node_id: str | None, message: str, **data: Any) -> None:
        self.log(run_id, node_id, "info", message, data or None)

    def warn(self, run_id: str, node_id: str | None, message: str, **data: Any) -> None:
        self.log(run_id, node_id, "warn", message, data or None)

    def error(self, run_id: str, node_id: str | None, message: str, **data: Any) -> None:
        self.log(run_id, node_id, "error", message, data or None)
