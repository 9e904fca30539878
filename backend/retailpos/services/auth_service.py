# Overview: Password hashing, user creation and credential checks.

"""
Authentication Service

Every invoice and stock adjustment is attributed to a user, so accounts are
created and verified only through here.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters, with upper, lower, digit and special character
- Session tokens are managed separately (see session_service.py)
"""

from __future__ import annotations

import re

import bcrypt

from ..extensions import db
from ..models import ROLES, Store, User
from retailpos.time_utils import utcnow


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")
    if not re.search(r"[A-Z]", password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")
    if not re.search(r"\d", password):
        raise PasswordValidationError("Password must contain at least one digit")
    if not re.search(r"[!@#$%^&*(),.'\":{}|<>_\-]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Validate strength, then bcrypt-hash the password."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed hash in storage
        return False


def create_user(
    username: str,
    password: str,
    role: str = "CASHIER",
    store_id: int | None = None,
    display_name: str | None = None,
    email: str | None = None,
) -> User:
    """
    Create a user with a bcrypt-hashed password.

    Raises:
        ValueError: unknown role, duplicate username, missing/unknown store
        PasswordValidationError: weak password
    """
    if role not in ROLES:
        raise ValueError(f"role must be one of {', '.join(ROLES)}")
    if role != "SUPER_ADMIN" and store_id is None:
        raise ValueError("store_id is required for store users")
    if store_id is not None and db.session.get(Store, store_id) is None:
        raise ValueError("Store not found")
    if db.session.query(User).filter_by(username=username).first():
        raise ValueError("Username already exists")

    user = User(
        username=username,
        password_hash=hash_password(password),
        role=role,
        store_id=store_id,
        display_name=display_name,
        email=email,
    )
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(username: str, password: str) -> User | None:
    """
    Return the active User for valid credentials, else None.

    Updates last_login_at on success.
    """
    user = (
        db.session.query(User)
        .filter(User.username == username, User.is_active.is_(True))
        .first()
    )
    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None
