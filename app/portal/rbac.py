from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import current_app, g

from app.portal.errors import Forbidden, Unauthorized
from app.portal.models import User


def user_has_permission(user: User | None, permission_key: str) -> bool:
    if not user or not user.is_active:
        return False
    for role in user.roles:
        for perm in role.permissions:
            if perm.key == permission_key:
                return True
    return False


def require_staff(fn: Callable[..., Any]) -> Callable[..., Any]:
    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        if getattr(g, "current_user", None) is None:
            raise Unauthorized("Not authorized, no staff session")
        return fn(*args, **kwargs)

    return wrapped


def require_customer(fn: Callable[..., Any]) -> Callable[..., Any]:
    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        if getattr(g, "current_customer", None) is None:
            raise Unauthorized("Not authorized, no customer session")
        return fn(*args, **kwargs)

    return wrapped


def require_permission(permission_key: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            user: User | None = getattr(g, "current_user", None)
            # Unauthenticated -> 401, authenticated but unauthorized -> 403
            if not user or not user.is_active:
                raise Unauthorized("Not authorized, no staff session")
            if not user_has_permission(user, permission_key):
                current_app.logger.warning(
                    "Forbidden: missing_permission=%s request_id=%s", permission_key, getattr(g, "request_id", None)
                )
                raise Forbidden(f"Missing permission: {permission_key}")
            return fn(*args, **kwargs)

        return wrapped

    return decorator
