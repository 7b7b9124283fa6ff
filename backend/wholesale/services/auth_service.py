# Overview: Service-layer operations for user accounts and password authentication.

"""
User accounts and password authentication.

Passwords are hashed with bcrypt (cost 12). A password needs at least
8 characters with one letter and one digit. Roles are plain strings
mapped to capabilities in wholesale.permissions.
"""

import re

import bcrypt

from ..extensions import db
from ..models import User
from ..models.auth import ROLES, ROLE_SALES_REPRESENTATIVE
from wholesale.time_utils import utcnow


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    if not password or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")
    if not re.search(r"[A-Za-z]", password):
        raise PasswordValidationError("Password must contain at least one letter")
    if not re.search(r"\d", password):
        raise PasswordValidationError("Password must contain at least one digit")


def hash_password(password: str) -> str:
    validate_password_strength(password)
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=12))
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt check; a malformed stored hash never matches."""
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def create_user(
    username: str,
    password: str,
    *,
    role: str = ROLE_SALES_REPRESENTATIVE,
    email: str | None = None,
) -> User:
    """
    Create a user with a bcrypt password hash.

    Raises ValueError for an unknown role or a taken username, and
    PasswordValidationError for a weak password.
    """
    username = (username or "").strip()
    if not username:
        raise ValueError("Username is required")
    if role not in ROLES:
        raise ValueError(f"Role must be one of: {', '.join(ROLES)}")
    if db.session.query(User.id).filter_by(username=username).first():
        raise ValueError("Username already exists")

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        role=role,
    )
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(username: str, password: str) -> User | None:
    """Return the active user for valid credentials, else None."""
    user = db.session.query(User).filter(
        db.or_(User.username == username, User.email == username),
        User.is_active.is_(True),
    ).first()
    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user
    return None


def set_user_active(user_id: int, is_active: bool) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise ValueError("User not found")
    user.is_active = bool(is_active)
    db.session.commit()
    return user
