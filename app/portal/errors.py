"""
Error taxonomy for the JSON API.

Service functions raise these; ``create_app`` turns them into the
``{"success": false, "error": ...}`` envelope.
"""

from __future__ import annotations


class PortalError(Exception):
    status_code = 500
    default_message = "Server Error"

    def __init__(self, message: str | list[str] | None = None) -> None:
        self.message = message if message is not None else self.default_message
        super().__init__(self.message if isinstance(self.message, str) else "; ".join(self.message))

    def to_payload(self) -> dict:
        return {"success": False, "error": self.message}


class ValidationError(PortalError):
    """One message per failing field."""

    status_code = 400

    def __init__(self, messages: list[str]) -> None:
        super().__init__(list(messages))

    @property
    def messages(self) -> list[str]:
        return list(self.message)


class DuplicateEmail(PortalError):
    status_code = 400
    default_message = "Customer already exists with this email"


class BadRequest(PortalError):
    status_code = 400
    default_message = "Bad request"


class Unauthorized(PortalError):
    status_code = 401
    default_message = "Not authorized"


class Forbidden(PortalError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(PortalError):
    status_code = 404
    default_message = "Not found"


class TooManyRequests(PortalError):
    status_code = 429
    default_message = "Too many login attempts. Please wait 5 minutes."
