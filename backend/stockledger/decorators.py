# Overview: Request decorators for API routes.

from functools import wraps

from flask import g, jsonify, request

from .errors import Unauthorized
from .services import session_service


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def require_auth(f):
    """
    Require a valid bearer session.

    Sets g.current_user (the owner for every ledger call) and g.token.
    Returns 401 when the header is missing or the token is invalid,
    expired or revoked.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if token is None:
            return jsonify(Unauthorized("Authentication required").to_dict()), 401

        user = session_service.validate_session(token)
        if user is None:
            return jsonify(Unauthorized("Invalid or expired token").to_dict()), 401

        g.current_user = user
        g.token = token
        return f(*args, **kwargs)

    return decorated_function
