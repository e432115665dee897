"""
JWT Verification Helpers for the Performance Test Service.

Provides utilities for verifying JSON Web Tokens issued by the identity
provider, a decorator for protecting Flask endpoints, and the capability
check that decides whether a caller may see tests owned by other users.
The service never *issues* tokens; it only validates them with the
configured ``JWT_PUBLIC_KEY``.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from functools import wraps
from typing import Any

import jwt
from flask import Response, current_app, g, jsonify, request

DEFAULT_ALLOWED_ALGORITHMS = ["RS256"]
REQUIRED_TOKEN_CLAIMS = ["user_id", "username", "role", "iat", "exp"]


class Role(str, Enum):
    """User roles carried in the ``role`` token claim."""

    USER = "U"
    ADMIN = "A"
    SUPER_USER = "S"
    SYSTEM_USER = "SYSTEM"


def can_view_all_tests(role: str | Role) -> bool:
    """Return True when *role* may see and manage tests of every owner."""
    return role != Role.USER


def owner_restriction() -> int | None:
    """
    Resolve the owner filter for the current request.

    Ordinary users are restricted to their own tests; elevated roles get
    ``None``, meaning no owner restriction.
    """
    if can_view_all_tests(g.role):
        return None
    return g.user_id


def verify_token(
    token: str,
    public_key: str,
    algorithms: list[str] | None = None,
) -> dict[str, Any] | None:
    """
    Decode and validate a JWT, returning the payload on success.

    Performs signature, ``exp`` and ``iat`` verification, requires all of
    ``REQUIRED_TOKEN_CLAIMS``, and checks that ``user_id`` is a positive
    integer, ``username`` a non-empty string and ``role`` a known ``Role``.

    Args:
        token: The encoded JWT string to verify.
        public_key: RSA public key in PEM format.
        algorithms: Acceptable signing algorithms.  Defaults to ``["RS256"]``.

    Returns:
        The decoded payload, or ``None`` if verification fails.
    """
    try:
        decoded = jwt.decode(
            token,
            public_key,
            algorithms=algorithms or DEFAULT_ALLOWED_ALGORITHMS,
            options={"require": REQUIRED_TOKEN_CLAIMS},
            leeway=int(current_app.config.get("JWT_CLOCK_SKEW_SECONDS", 30)),
        )
    except jwt.InvalidTokenError:
        return None

    user_id = decoded.get("user_id")
    username = decoded.get("username")

    if not isinstance(user_id, int) or user_id <= 0:
        return None
    if not isinstance(username, str) or not username.strip():
        return None
    if decoded.get("role") not in {role.value for role in Role}:
        return None
    return decoded


def require_auth(view_func: Callable[..., tuple[Response, int] | Response]):
    """
    Decorator that enforces Bearer-token authentication on API endpoints.

    On success the caller's identity is stored on ``flask.g`` as
    ``g.user_id``, ``g.username`` and ``g.role``.  Otherwise the request is
    answered with a ``401`` JSON error before the view runs.
    """

    @wraps(view_func)
    def wrapper(*args, **kwargs):
        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return jsonify({"error": "Missing or invalid Authorization header"}), 401

        token = auth_header[7:].strip()
        if not token:
            return jsonify({"error": "Missing or invalid Authorization header"}), 401

        payload = verify_token(
            token,
            current_app.config["JWT_PUBLIC_KEY"],
            algorithms=DEFAULT_ALLOWED_ALGORITHMS,
        )
        if payload is None:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.user_id = payload["user_id"]
        g.username = payload["username"]
        g.role = Role(payload["role"])
        return view_func(*args, **kwargs)

    return wrapper


def require_elevated_role(view_func: Callable[..., tuple[Response, int] | Response]):
    """Reject callers whose role is restricted to their own tests with ``403``."""

    @wraps(view_func)
    def wrapper(*args, **kwargs):
        if not can_view_all_tests(g.role):
            return jsonify({"error": "Insufficient privileges"}), 403
        return view_func(*args, **kwargs)

    return wrapper
