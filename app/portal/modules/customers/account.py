from __future__ import annotations

from flask import Blueprint, current_app, g, request

from app.portal.auth import check_rate_limit, clear_attempts, record_failed_attempt
from app.portal.db import db_session
from app.portal.errors import Unauthorized
from app.portal.models import Customer
from app.portal.modules.customers.service import (
    authenticate_customer,
    change_password,
    register_customer,
    serialize_customer,
    update_profile,
)
from app.portal.rbac import require_customer
from app.portal.security import issue_token
from app.portal.utils import json_body, ok

bp = Blueprint("customer_account", __name__)


def _current_customer() -> Customer:
    c = getattr(g, "current_customer", None)
    if not c:
        raise RuntimeError("No current customer")
    return c


@bp.post("/register")
def register():
    s = db_session()
    c = register_customer(s, json_body())
    s.commit()
    return ok(serialize_customer(c), 201, token=issue_token("customer", c.id))


@bp.post("/login")
def login():
    body = json_body()
    key = f"customer:{request.remote_addr or 'unknown'}"
    check_rate_limit(key)

    s = db_session()
    try:
        c = authenticate_customer(s, body.get("email"), body.get("password"))
    except Unauthorized:
        record_failed_attempt(key)
        s.commit()  # keep the login_failed audit row
        current_app.logger.warning(
            "Customer login failed (email=%s request_id=%s)", body.get("email"), g.request_id
        )
        raise
    clear_attempts(key)
    s.commit()
    return ok(serialize_customer(c), token=issue_token("customer", c.id))


@bp.get("/profile")
@require_customer
def profile_get():
    return ok(serialize_customer(_current_customer()))


@bp.put("/profile")
@require_customer
def profile_put():
    s = db_session()
    c = update_profile(s, _current_customer(), json_body())
    s.commit()
    return ok(serialize_customer(c))


@bp.put("/profile/password")
@require_customer
def profile_password_put():
    body = json_body()
    s = db_session()
    c = change_password(s, _current_customer(), body.get("currentPassword"), body.get("newPassword"))
    s.commit()
    return ok(serialize_customer(c))
