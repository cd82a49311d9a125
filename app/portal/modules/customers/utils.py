from __future__ import annotations

import re
from datetime import date, datetime

# Same language as ^\w+([.-]?\w+)*@\w+([.-]?\w+)*(\.\w{2,3})+$ without the nested
# optional quantifier, which backtracks exponentially on long local parts.
EMAIL_RE = re.compile(r"^\w+(?:[.-]\w+)*@\w+(?:[.-]\w+)*(?:\.\w{2,3})+$", re.ASCII)

MIN_PASSWORD_LENGTH = 6
# Width of customers.email
MAX_EMAIL_LENGTH = 320

# JSON sub-key -> Customer column
ADDRESS_FIELDS = {
    "street": "address_street",
    "city": "address_city",
    "state": "address_state",
    "zipCode": "address_zip_code",
    "country": "address_country",
}


def normalize_email(value: str | None) -> str:
    return (value or "").strip().lower()


def is_valid_email(email: str) -> bool:
    return len(email or "") <= MAX_EMAIL_LENGTH and bool(EMAIL_RE.match(email or ""))


def clean_str(value: str | None) -> str | None:
    """Trim; empty becomes None."""
    v = (value or "").strip()
    return v or None


def parse_date_of_birth(value: object) -> date | None:
    """
    Accepts a date, ``YYYY-MM-DD``, or an ISO datetime string (date part kept).
    Raises ValueError for anything else.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError(f"not a date: {value!r}")
    s = value.strip()
    if not s:
        return None
    if len(s) > 10:
        if s[10] not in ("T", " "):
            raise ValueError(f"not a date: {value!r}")
        return datetime.fromisoformat(s.replace("Z", "+00:00")).date()
    return date.fromisoformat(s)


def password_errors(password: object) -> list[str]:
    if password is None or password == "":
        return ["Please add a password"]
    if not isinstance(password, str):
        return ["password must be a string"]
    if len(password) < MIN_PASSWORD_LENGTH:
        return [f"Password must be at least {MIN_PASSWORD_LENGTH} characters"]
    return []
