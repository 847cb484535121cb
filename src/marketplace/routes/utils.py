from datetime import datetime, timezone
from functools import wraps
from typing import Any, Dict, Optional

from flask import abort, current_app, g, jsonify, request
from marshmallow import Schema
from marshmallow import ValidationError as SchemaValidationError

from marketplace.core.config import Config
from marketplace.core.exceptions import ForbiddenError, UnauthorizedError
from marketplace.core.security import decode_access_token
from marketplace.db import get_session
from marketplace.services.outbox_dispatcher import OutboxDispatcher
from marketplace.services.user_service import UserService


def success_response(data, message: Optional[str] = None, status: int = 200):
    """Consistent success response envelope."""
    response = {
        "success": True,
        "data": data,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "request_id": g.get("request_id"),
    }
    if message:
        response["message"] = message
    return jsonify(response), status


def parse_int(
    v,
    default=None,
    min_val: Optional[int] = None,
    max_val: Optional[int] = None,
    field_name: str = "value",
) -> Optional[int]:
    """Parse an integer with optional range validation. Missing values return ``default``."""
    if v is None or v == "":
        return default
    try:
        result = int(v)
    except (TypeError, ValueError):
        abort(400, f"Invalid {field_name}: must be a valid integer")
    if min_val is not None and result < min_val:
        abort(400, f"{field_name} must be at least {min_val}")
    if max_val is not None and result > max_val:
        abort(400, f"{field_name} cannot exceed {max_val}")
    return result


def parse_bool(v, default: Optional[bool] = False) -> Optional[bool]:
    """Parse a boolean value from a query string."""
    if v is None:
        return default
    if isinstance(v, bool):
        return v
    return str(v).lower() in ("1", "true", "t", "yes", "y", "on")


def load_body(schema: Schema, partial: bool = False) -> Dict[str, Any]:
    """Validate the JSON body against ``schema``; 400 with the field messages on failure."""
    payload = request.get_json(silent=True)
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        abort(400, "Request body must be a JSON object.")
    try:
        return schema.load(payload, partial=partial)
    except SchemaValidationError as err:
        abort(400, str(err.messages))


def get_config() -> Config:
    return current_app.extensions["marketplace"]["config"]


def get_dispatcher() -> OutboxDispatcher:
    return current_app.extensions["marketplace"]["dispatcher"]


def _bearer_token() -> str:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise UnauthorizedError("Not authorized, no token")
    return token.strip()


def auth_required(*roles: str):
    """
    Require a valid bearer token, and optionally one of ``roles``.

    The user is re-read from the database so a deleted account or changed
    role takes effect immediately. Sets ``g.current_user``.
    """

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            config = get_config()
            claims = decode_access_token(_bearer_token(), config.security)
            with get_session() as session:
                user = UserService(session, config.security).load_current_user(claims["user_id"])

            if roles and user.role not in roles:
                raise ForbiddenError(f"User role {user.role} is not authorized to access this route")

            g.current_user = user
            return view(*args, **kwargs)

        return wrapper

    return decorator
