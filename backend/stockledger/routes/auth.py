# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/stockledger/routes/auth.py
"""
Authentication API routes

- Self-registration with password strength validation
- Login returns a bearer token for the Authorization header
- Logout revokes the presented token
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..errors import LedgerError, Unauthorized
from ..services import auth_service, session_service

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register")
def register_route():
    """
    Create an account.

    Body: {"full_name": str, "email": str, "password": str}
    """
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.create_user(
            full_name=data.get("full_name"),
            email=data.get("email"),
            password=data.get("password"),
        )
        return jsonify({"user": user.to_dict()}), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/login")
def login_route():
    """
    Authenticate and create a session token.

    Token must be included as "Authorization: Bearer <token>" on protected routes.
    """
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")

    if not email or not password:
        return jsonify({
            "error": "Email and password are required",
            "kind": "VALIDATION_FAILED",
            "details": {"credentials": "email and password required"},
        }), 400

    try:
        user = auth_service.authenticate(email, password)
        if user is None:
            return jsonify(Unauthorized("Invalid credentials").to_dict()), 401

        session, token = session_service.create_session(user.id)
        return jsonify({
            "user": user.to_dict(),
            "token": token,
            "expires_at": session.to_dict()["expires_at"],
        }), 200
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    try:
        session_service.revoke_session(g.token)
        return jsonify({"ok": True, "message": "Logged out successfully"}), 200
    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": g.current_user.to_dict()}), 200
