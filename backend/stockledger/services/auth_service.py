# Overview: Service-layer operations for auth; encapsulates account creation and password checks.

"""
Authentication Service

Every ledger row belongs to one user, so every write must be attributable.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters, with at least one uppercase letter, one lowercase
  letter and one digit
- Email is the login identifier and is unique across accounts
- Session tokens are managed separately (see session_service.py)
"""
from __future__ import annotations

import re

import bcrypt
from flask import current_app

from ..errors import DuplicateName, ValidationFailed
from ..extensions import db
from ..models import User

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
BCRYPT_ROUNDS = 12


def password_errors(password) -> list[str]:
    """Every rule the password breaks, in a stable order."""
    if not isinstance(password, str):
        return ["Password is required"]

    problems = []
    if len(password) < 8:
        problems.append("Password must be at least 8 characters long")
    if not re.search(r"[A-Z]", password):
        problems.append("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        problems.append("Password must contain at least one lowercase letter")
    if not re.search(r"\d", password):
        problems.append("Password must contain at least one digit")
    return problems


def validate_registration(full_name, email, password) -> dict[str, str]:
    errors: dict[str, str] = {}

    if not isinstance(full_name, str) or len(full_name.strip()) < 2:
        errors["full_name"] = "Full name must be at least 2 characters long"

    if not isinstance(email, str) or not EMAIL_RE.match(email.strip()):
        errors["email"] = "Please provide a valid email address"

    problems = password_errors(password)
    if problems:
        errors["password"] = problems[0]

    return errors


def normalize_email(email: str) -> str:
    return email.strip().lower()


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe comparison via bcrypt.checkpw; malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def create_user(*, full_name, email, password) -> User:
    """
    Create an account.

    Raises ValidationFailed for bad input and DuplicateName when the email
    is already registered.
    """
    errors = validate_registration(full_name, email, password)
    if errors:
        raise ValidationFailed("Invalid registration data", details=errors)

    email = normalize_email(email)
    if db.session.query(User.id).filter_by(email=email).first() is not None:
        raise DuplicateName("User already exists with this email", details={"email": email})

    user = User(full_name=full_name.strip(), email=email, password_hash=hash_password(password))
    db.session.add(user)
    db.session.commit()

    current_app.logger.info("Registered user id=%s", user.id)
    return user


def authenticate(email, password) -> User | None:
    """Return the user when the credentials match, None otherwise."""
    if not isinstance(email, str) or not isinstance(password, str):
        return None

    user = db.session.query(User).filter_by(email=normalize_email(email)).first()
    if user is None or not verify_password(password, user.password_hash):
        return None
    return user
