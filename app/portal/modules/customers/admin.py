from __future__ import annotations

from flask import Blueprint, g

from app.portal.db import db_session
from app.portal.models import User
from app.portal.modules.customers.service import (
    admin_update_customer,
    delete_customer,
    get_customer_or_404,
    list_customers,
    reset_password,
    serialize_customer,
)
from app.portal.rbac import require_permission
from app.portal.utils import json_body, ok

bp = Blueprint("customers_admin", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


@bp.get("/", strict_slashes=False)
@require_permission("customers.view")
def customers_list():
    s = db_session()
    customers = list_customers(s)
    return ok([serialize_customer(c) for c in customers], count=len(customers))


@bp.get("/<customer_id>")
@require_permission("customers.view")
def customer_get(customer_id: str):
    s = db_session()
    return ok(serialize_customer(get_customer_or_404(s, customer_id)))


@bp.put("/<customer_id>")
@require_permission("customers.edit")
def customer_put(customer_id: str):
    s = db_session()
    payload = json_body()
    c = get_customer_or_404(s, customer_id)
    c = admin_update_customer(s, c, payload, user=_current_user())
    s.commit()
    return ok(serialize_customer(c))


@bp.delete("/<customer_id>")
@require_permission("customers.delete")
def customer_delete(customer_id: str):
    s = db_session()
    c = get_customer_or_404(s, customer_id)
    delete_customer(s, c, user=_current_user())
    s.commit()
    return ok({}, message="Customer deleted successfully")


@bp.put("/<customer_id>/password")
@require_permission("customers.reset_password")
def customer_password_put(customer_id: str):
    s = db_session()
    body = json_body()
    c = get_customer_or_404(s, customer_id)
    reason = str(body.get("reason") or "").strip()[:512] or None
    c = reset_password(s, c, body.get("newPassword"), user=_current_user(), reason=reason)
    s.commit()
    return ok(serialize_customer(c))
