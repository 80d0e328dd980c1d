from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic.core.logging import current_request_id, get_logger
from clinic.models.audit_log import AuditLog

log = get_logger(__name__)


def client_ip(request: Request | None) -> str | None:
    """First X-Forwarded-For hop, then X-Real-IP, then the socket peer."""
    if request is None:
        return None
    forwarded = request.headers.get("x-forwarded-for", "").split(",")[0].strip()
    if forwarded:
        return forwarded
    real_ip = request.headers.get("x-real-ip", "").strip()
    if real_ip:
        return real_ip
    return request.client.host if request.client else None


def record_audit(
    db: Session,
    *,
    request: Request | None,
    user_id: int | None,
    action: str,
    entity: str,
    entity_id: int | None,
    details: dict[str, Any] | None = None,
    autocommit: bool = False,
) -> AuditLog:
    """Add an audit entry for a write on ``entity``.

    By default the entry is only added to ``db``: it commits or rolls back with
    the caller's change. ``autocommit`` commits it right away, for events with
    no other write (login).
    """
    entry = AuditLog(
        user_id=user_id,
        action=action,
        entity=entity,
        entity_id=entity_id,
        timestamp_utc=datetime.now(UTC),
        ip=client_ip(request),
        request_id=current_request_id(),
        details=details,
    )
    db.add(entry)
    if autocommit:
        try:
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            log.warning("audit.write_failed", action=action, entity=entity)
    return entry
