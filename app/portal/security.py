from __future__ import annotations

from functools import lru_cache

from flask import current_app
from itsdangerous import BadSignature, URLSafeTimedSerializer
from werkzeug.security import check_password_hash, generate_password_hash

TOKEN_KINDS = ("customer", "staff")


def hash_password(plaintext: str) -> str:
    """Salted one-way hash; method comes from PASSWORD_HASH_METHOD."""
    return generate_password_hash(plaintext, method=current_app.config["PASSWORD_HASH_METHOD"])


def verify_password(password_hash: str, candidate: str) -> bool:
    return check_password_hash(password_hash, candidate)


@lru_cache(maxsize=4)
def _dummy_hash(method: str) -> str:
    return generate_password_hash("not-a-real-password", method=method)


def burn_password_check(candidate: str) -> None:
    """
    Spend the same work as a real verification. Used when the account does not
    exist so the response time does not reveal it.
    """
    check_password_hash(_dummy_hash(current_app.config["PASSWORD_HASH_METHOD"]), candidate)


def _serializer(kind: str) -> URLSafeTimedSerializer:
    if kind not in TOKEN_KINDS:
        raise ValueError(f"unknown token kind {kind!r}")
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=f"portal.{kind}")


def issue_token(kind: str, subject_id: int) -> str:
    return _serializer(kind).dumps({"sub": subject_id, "kind": kind})


def read_token(token: str) -> tuple[str, int] | None:
    """
    Return (kind, subject_id) for a valid, unexpired token, otherwise None.
    """
    max_age = current_app.config["TOKEN_MAX_AGE"]
    for kind in TOKEN_KINDS:
        try:
            payload = _serializer(kind).loads(token, max_age=max_age)
        except BadSignature:
            continue
        if not isinstance(payload, dict) or payload.get("kind") != kind:
            return None
        sub = payload.get("sub")
        if not isinstance(sub, int):
            return None
        return kind, sub
    return None


def bearer_token(auth_header: str | None) -> str | None:
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split("Bearer ", 1)[1].strip()
    return token or None
