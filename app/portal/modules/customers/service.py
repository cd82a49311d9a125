"""
Customer record store and the two services on top of it.

Writes follow one rule: the caller's fields are merged onto the current values,
the merged record is validated as a whole, and only then copied onto the row.
A failing call therefore never leaves a half-applied update behind.

Passwords are hashed only by the functions whose input carries a password
(register, change_password, reset_password). Field updates never touch
``password_hash``.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.portal.audit import record_event
from app.portal.errors import BadRequest, DuplicateEmail, NotFound, Unauthorized, ValidationError
from app.portal.models import User
from app.portal.modules.customers.models import CUSTOMER_TYPES, Customer
from app.portal.modules.customers.utils import (
    ADDRESS_FIELDS,
    MAX_EMAIL_LENGTH,
    clean_str,
    is_valid_email,
    normalize_email,
    parse_date_of_birth,
    password_errors,
)
from app.portal.security import burn_password_check, hash_password, verify_password

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("firstName", "lastName", "phoneNumber", "address", "dateOfBirth", "customerType")
ADMIN_FIELDS = PROFILE_FIELDS + ("email", "isActive")
REGISTER_FIELDS = PROFILE_FIELDS + ("email",)

ADMIN_PASSWORD_REFUSAL = "Admin password update should use a dedicated reset mechanism."
EMAIL_TAKEN = "Email is already registered"
# Upper bound of the Integer primary key column.
MAX_CUSTOMER_ID = 2**31 - 1


# --- lookups ---------------------------------------------------------------


def parse_customer_id(raw: object) -> int | None:
    """Malformed ids resolve to None so callers can fold them into NotFound."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        value = raw
    else:
        s = str(raw or "").strip()
        if not s.isdigit() or not s.isascii() or len(s) > len(str(MAX_CUSTOMER_ID)):
            return None
        value = int(s)
    return value if 0 < value <= MAX_CUSTOMER_ID else None


def get_customer_by_id(s: Session, customer_id: int) -> Customer | None:
    return s.get(Customer, customer_id)


def get_customer_or_404(s: Session, raw_id: object) -> Customer:
    customer_id = parse_customer_id(raw_id)
    c = get_customer_by_id(s, customer_id) if customer_id is not None else None
    if c is None:
        raise NotFound(f"Customer not found with id {raw_id}")
    return c


def find_customer_by_email(s: Session, email: str) -> Customer | None:
    return s.query(Customer).filter(Customer.email == normalize_email(email)).one_or_none()


def list_customers(s: Session) -> list[Customer]:
    return s.query(Customer).order_by(Customer.id.asc()).all()


# --- validation --------------------------------------------------------------


def _string_field(values: dict[str, Any], key: str, errs: list[str]) -> str | None:
    v = values.get(key)
    if v is None:
        return None
    if not isinstance(v, str):
        errs.append(f"{key} must be a string")
        return None
    return clean_str(v)


def clean_customer_fields(values: dict[str, Any]) -> tuple[dict[str, Any], list[str]]:
    """
    Validate a full (merged) camelCase customer record.
    Returns (column values, error messages). Password is validated separately.
    """
    errs: list[str] = []
    out: dict[str, Any] = {}

    first_name = _string_field(values, "firstName", errs)
    if not first_name and isinstance(values.get("firstName"), (str, type(None))):
        errs.append("Please add a first name")
    out["first_name"] = first_name

    last_name = _string_field(values, "lastName", errs)
    if not last_name and isinstance(values.get("lastName"), (str, type(None))):
        errs.append("Please add a last name")
    out["last_name"] = last_name

    raw_email = values.get("email")
    if raw_email is not None and not isinstance(raw_email, str):
        errs.append("email must be a string")
    else:
        email = normalize_email(raw_email)
        if not email:
            errs.append("Please add an email")
        elif not is_valid_email(email):
            errs.append("Please add a valid email")
        out["email"] = email

    out["phone_number"] = _string_field(values, "phoneNumber", errs)

    address = values.get("address")
    if address is None:
        address = {}
    if not isinstance(address, dict):
        errs.append("Address must be an object")
    else:
        for key, column in ADDRESS_FIELDS.items():
            v = address.get(key)
            if v is not None and not isinstance(v, str):
                errs.append(f"address.{key} must be a string")
                continue
            out[column] = clean_str(v)

    try:
        out["date_of_birth"] = parse_date_of_birth(values.get("dateOfBirth"))
    except ValueError:
        errs.append("Please add a valid date of birth")

    customer_type = values.get("customerType")
    if customer_type is None or customer_type == "":
        out["customer_type"] = "Individual"
    elif not isinstance(customer_type, str) or customer_type not in CUSTOMER_TYPES:
        errs.append(f"`{customer_type}` is not a valid customer type")
    else:
        out["customer_type"] = customer_type

    is_active = values.get("isActive", True)
    if not isinstance(is_active, bool):
        errs.append("isActive must be a boolean")
    else:
        out["is_active"] = is_active

    return out, errs


def customer_values(c: Customer) -> dict[str, Any]:
    """Current state of a row in request (camelCase) shape; the merge base for updates."""
    return {
        "firstName": c.first_name,
        "lastName": c.last_name,
        "email": c.email,
        "phoneNumber": c.phone_number,
        "address": {key: getattr(c, column) for key, column in ADDRESS_FIELDS.items()},
        "dateOfBirth": c.date_of_birth,
        "customerType": c.customer_type,
        "isActive": c.is_active,
    }


def merge_fields(current: dict[str, Any], payload: dict[str, Any], allowed: tuple[str, ...]) -> dict[str, Any]:
    """
    Overlay the allowed keys present in payload onto current.
    ``address`` merges key by key, so untouched sub-fields survive.
    """
    merged = dict(current)
    merged["address"] = dict(current.get("address") or {})
    for key in allowed:
        if key not in payload:
            continue
        if key == "address" and isinstance(payload[key], dict):
            for sub_key in ADDRESS_FIELDS:
                if sub_key in payload[key]:
                    merged["address"][sub_key] = payload[key][sub_key]
        else:
            merged[key] = payload[key]
    return merged


# --- serialization -----------------------------------------------------------


def serialize_customer(c: Customer) -> dict[str, Any]:
    """Public shape of a customer. There is no path that includes the password hash."""
    return {
        "id": c.id,
        "firstName": c.first_name,
        "lastName": c.last_name,
        "email": c.email,
        "phoneNumber": c.phone_number,
        "address": {key: getattr(c, column) for key, column in ADDRESS_FIELDS.items()},
        "dateOfBirth": c.date_of_birth.isoformat() if c.date_of_birth else None,
        "customerType": c.customer_type,
        "isActive": c.is_active,
        "createdAt": c.created_at.isoformat() if c.created_at else None,
        "updatedAt": c.updated_at.isoformat() if c.updated_at else None,
    }


# --- writes ------------------------------------------------------------------


def register_customer(s: Session, payload: dict[str, Any]) -> Customer:
    values = {key: payload.get(key) for key in REGISTER_FIELDS}
    cleaned, errs = clean_customer_fields(values)
    password = payload.get("password")
    errs.extend(password_errors(password))
    if errs:
        raise ValidationError(errs)

    if find_customer_by_email(s, cleaned["email"]) is not None:
        raise DuplicateEmail()

    c = Customer(password_hash=hash_password(password), **cleaned)
    s.add(c)
    try:
        # The unique index settles concurrent registrations with the same email.
        s.flush()
    except IntegrityError:
        s.rollback()
        raise DuplicateEmail()

    record_event(
        s,
        actor=c,
        action="customer.register",
        entity_type="Customer",
        entity_id=str(c.id),
        metadata={"email": c.email, "customer_type": c.customer_type},
    )
    logger.info("Customer registered id=%s", c.id)
    return c


def _apply_update(s: Session, c: Customer, payload: dict[str, Any], allowed: tuple[str, ...]) -> dict[str, Any]:
    merged = merge_fields(customer_values(c), payload, allowed)
    cleaned, errs = clean_customer_fields(merged)
    if not errs and cleaned["email"] != c.email:
        other = find_customer_by_email(s, cleaned["email"])
        if other is not None and other.id != c.id:
            errs.append(EMAIL_TAKEN)
    if errs:
        raise ValidationError(errs)

    changes: dict[str, Any] = {}
    for column, new in cleaned.items():
        old = getattr(c, column)
        if old != new:
            changes[column] = {"old": old, "new": new}
            setattr(c, column, new)
    if not changes:
        return changes

    try:
        s.flush()
    except IntegrityError:
        s.rollback()
        raise ValidationError([EMAIL_TAKEN])
    return changes


def update_profile(s: Session, c: Customer, payload: dict[str, Any]) -> Customer:
    """Self-service update. Keys outside PROFILE_FIELDS (password, email, isActive) are ignored."""
    changes = _apply_update(s, c, payload, PROFILE_FIELDS)
    if changes:
        record_event(
            s,
            actor=c,
            action="customer.profile_update",
            entity_type="Customer",
            entity_id=str(c.id),
            metadata={"fields": sorted(changes)},
        )
    return c


def admin_update_customer(s: Session, c: Customer, payload: dict[str, Any], *, user: User) -> Customer:
    if "password" in payload:
        raise BadRequest(ADMIN_PASSWORD_REFUSAL)
    changes = _apply_update(s, c, payload, ADMIN_FIELDS)
    if changes:
        record_event(
            s,
            actor=user,
            action="customer.admin_update",
            entity_type="Customer",
            entity_id=str(c.id),
            metadata={"changes": changes},
        )
    return c


def delete_customer(s: Session, c: Customer, *, user: User) -> None:
    record_event(
        s,
        actor=user,
        action="customer.delete",
        entity_type="Customer",
        entity_id=str(c.id),
        metadata={"email": c.email},
    )
    s.delete(c)
    s.flush()


def authenticate_customer(s: Session, email: object, password: object) -> Customer:
    if not isinstance(email, str) or not isinstance(password, str) or not email.strip() or not password:
        raise BadRequest("Please provide an email and password")

    c = find_customer_by_email(s, email)
    if c is None:
        burn_password_check(password)
        ok = False
    else:
        ok = verify_password(c.password_hash, password) and c.is_active
    if not ok:
        record_event(
            s,
            actor=None,
            action="customer.login_failed",
            entity_type="Customer",
            reason="Invalid credentials",
            metadata={"email": normalize_email(email)[:MAX_EMAIL_LENGTH]},
        )
        raise Unauthorized("Invalid credentials")

    record_event(s, actor=c, action="customer.login", entity_type="Customer", entity_id=str(c.id))
    return c


def change_password(s: Session, c: Customer, current_password: object, new_password: object) -> Customer:
    if not isinstance(current_password, str) or not verify_password(c.password_hash, current_password):
        raise Unauthorized("Current password is incorrect")
    errs = password_errors(new_password)
    if errs:
        raise ValidationError(errs)
    c.password_hash = hash_password(new_password)
    record_event(s, actor=c, action="customer.password_change", entity_type="Customer", entity_id=str(c.id))
    return c


def reset_password(s: Session, c: Customer, new_password: object, *, user: User, reason: str | None = None) -> Customer:
    """The dedicated reset path admin updates are pointed to."""
    errs = password_errors(new_password)
    if errs:
        raise ValidationError(errs)
    c.password_hash = hash_password(new_password)
    record_event(
        s,
        actor=user,
        action="customer.password_reset",
        entity_type="Customer",
        entity_id=str(c.id),
        reason=reason,
    )
    return c
