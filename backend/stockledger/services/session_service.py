# Overview: Service-layer operations for bearer sessions.

"""
Session Token Management

- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage; the plaintext only ever
  exists in the login response
- Absolute timeout of SESSION_TTL_HOURS
- Revocable on logout

validate_session() only reads. It runs before route handlers that open
their own write transactions, so it must not leave one open.
"""
from __future__ import annotations

import hashlib
import secrets
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User
from ..time_utils import utcnow


def generate_token() -> str:
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_session(user_id: int) -> tuple[SessionToken, str]:
    """
    Create a session for user_id.

    Returns (session_record, plaintext_token).
    """
    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        expires_at=now + timedelta(hours=current_app.config["SESSION_TTL_HOURS"]),
    )
    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def validate_session(token: str) -> User | None:
    """
    Return the session's user, or None when the token is unknown, expired
    or revoked.
    """
    session = (
        db.session.query(SessionToken)
        .filter(
            SessionToken.token_hash == hash_token(token),
            SessionToken.revoked_at.is_(None),
        )
        .first()
    )
    result = None
    if session is not None and session.expires_at > utcnow():
        result = session.user

    # End the read-only transaction so route handlers start clean.
    db.session.commit()
    return result


def revoke_session(token: str) -> bool:
    """Revoke the session behind token. Returns False if there was none."""
    session = (
        db.session.query(SessionToken)
        .filter(
            SessionToken.token_hash == hash_token(token),
            SessionToken.revoked_at.is_(None),
        )
        .first()
    )
    if session is None:
        return False

    session.revoked_at = utcnow()
    db.session.commit()
    return True
