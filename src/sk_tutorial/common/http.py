from __future__ import annotations

from functools import wraps
from typing import Iterable, Optional

from flask import g, request

from ..core.enums import Role
from ..core.exceptions import AuthorizationError, ValidationError
from ..users.service import TokenService


def bearer_token() -> Optional[str]:
    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        return None
    return header[len("Bearer "):].strip() or None


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def int_arg(value, field_name: str) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field_name}")


def auth_required(tokens: TokenService, roles: Iterable[Role] = ()):
    """Decorator factory: verify the bearer token, then the caller's role.

    The verified claims land on ``flask.g.current_user``.
    """

    allowed = frozenset(roles)

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            claims = tokens.verify(bearer_token())
            if allowed and claims.role not in allowed:
                raise AuthorizationError("Access denied. Insufficient permissions.")
            g.current_user = claims
            return view(*args, **kwargs)

        return wrapper

    return decorator
