import json
from typing import Any

from flask import g, has_request_context, request
from sqlalchemy.orm import Session

from app.portal.models import AuditEvent, Customer, User


def _actor_fields(actor: User | Customer | None) -> tuple[str | None, int | None, str | None]:
    if actor is None:
        return None, None, None
    if isinstance(actor, Customer):
        return "customer", actor.id, actor.email
    return "staff", actor.id, actor.email


def record_event(
    s: Session,
    *,
    actor: User | Customer | None,
    action: str,
    entity_type: str | None = None,
    entity_id: str | None = None,
    reason: str | None = None,
    metadata: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> AuditEvent:
    """
    Append-only audit event helper. Never pass secrets in metadata.
    """
    in_request = has_request_context()
    rid = request_id or (getattr(g, "request_id", None) if in_request else None)
    actor_type, actor_id, actor_email = _actor_fields(actor)
    ev = AuditEvent(
        request_id=rid,
        actor_type=actor_type,
        actor_id=actor_id,
        actor_email=actor_email,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        reason=reason,
        metadata_json=json.dumps(metadata, sort_keys=True, default=str) if metadata else None,
        client_ip=request.remote_addr if in_request else None,
    )
    s.add(ev)
    return ev
