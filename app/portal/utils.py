from __future__ import annotations

from typing import Any

from flask import jsonify, request

from app.portal.errors import BadRequest


def json_body() -> dict[str, Any]:
    """Request body as a JSON object; anything else is a 400."""
    body = request.get_json(silent=True)
    if body is None:
        if request.get_data(cache=True):
            raise BadRequest("Request body must be valid JSON")
        return {}
    if not isinstance(body, dict):
        raise BadRequest("Request body must be a JSON object")
    return body


def ok(data: Any, status: int = 200, **extra: Any):
    """Success envelope."""
    payload: dict[str, Any] = {"success": True}
    payload.update(extra)
    payload["data"] = data
    return jsonify(payload), status
