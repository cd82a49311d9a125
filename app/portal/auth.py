from __future__ import annotations

import uuid
from collections import defaultdict
from datetime import datetime, timedelta

from flask import Blueprint, current_app, g, request

from app.portal.audit import record_event
from app.portal.db import db_session
from app.portal.errors import BadRequest, TooManyRequests, Unauthorized
from app.portal.models import Customer, User
from app.portal.rbac import require_staff
from app.portal.security import bearer_token, burn_password_check, issue_token, read_token, verify_password
from app.portal.utils import json_body, ok

bp = Blueprint("auth", __name__)
_login_attempts: dict[str, list[datetime]] = defaultdict(list)
_LOGIN_RATE_LIMIT = 5
_LOGIN_RATE_WINDOW = 300  # seconds


def check_rate_limit(key: str) -> None:
    now = datetime.utcnow()
    cutoff = now - timedelta(seconds=_LOGIN_RATE_WINDOW)
    _login_attempts[key] = [t for t in _login_attempts[key] if t > cutoff]
    if len(_login_attempts[key]) >= _LOGIN_RATE_LIMIT:
        raise TooManyRequests()


def record_failed_attempt(key: str) -> None:
    _login_attempts[key].append(datetime.utcnow())


def clear_attempts(key: str) -> None:
    _login_attempts.pop(key, None)


def load_current_identity() -> None:
    """
    Resolves the bearer token into g.current_user (staff) or g.current_customer.
    Also assigns a simple per-request request_id (for audit/log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex
    g.current_user = None
    g.current_customer = None
    if request.path.startswith(("/health", "/healthz")):
        return

    token = bearer_token(request.headers.get("Authorization"))
    if not token:
        return
    resolved = read_token(token)
    if resolved is None:
        return
    kind, subject_id = resolved

    s = db_session()
    if kind == "staff":
        user = s.get(User, subject_id)
        if user and user.is_active:
            g.current_user = user
    else:
        customer = s.get(Customer, subject_id)
        if customer and customer.is_active:
            g.current_customer = customer


def serialize_user(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "isActive": user.is_active,
        "roles": sorted(r.key for r in user.roles),
        "permissions": sorted({p.key for r in user.roles for p in r.permissions}),
        "createdAt": user.created_at.isoformat() if user.created_at else None,
    }


@bp.post("/login")
def login_post():
    body = json_body()
    email = str(body.get("email") or "").strip().lower()
    password = str(body.get("password") or "")
    if not email or not password:
        raise BadRequest("Please provide an email and password")

    ip = request.remote_addr or "unknown"
    check_rate_limit(f"staff:{ip}")

    s = db_session()
    user = s.query(User).filter(User.email == email).one_or_none()
    if user is None:
        burn_password_check(password)
    if not user or not user.is_active or not verify_password(user.password_hash, password):
        record_failed_attempt(f"staff:{ip}")
        record_event(
            s,
            actor=None,
            action="auth.login_failed",
            entity_type="User",
            reason="Invalid credentials",
            metadata={"email": email[:320]},
        )
        s.commit()
        current_app.logger.warning("Staff login failed (email=%s request_id=%s)", email, g.request_id)
        raise Unauthorized("Invalid credentials")

    clear_attempts(f"staff:{ip}")
    record_event(s, actor=user, action="auth.login", entity_type="User", entity_id=str(user.id))
    s.commit()
    return ok(serialize_user(user), token=issue_token("staff", user.id))


@bp.get("/me")
@require_staff
def me():
    return ok(serialize_user(g.current_user))
