# Overview: Service-layer operations for bearer session tokens.

"""
Session tokens.

- 32 random bytes, hex encoded, handed to the client once
- stored as a SHA-256 hash
- 24-hour absolute timeout, 2-hour idle timeout
- revoked on logout, idle timeout or user deactivation
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from ..extensions import db
from ..models import SessionToken, User
from wholesale.time_utils import utcnow


SESSION_ABSOLUTE_TIMEOUT = timedelta(hours=24)
SESSION_IDLE_TIMEOUT = timedelta(hours=2)


@dataclass
class SessionContext:
    user: User
    session: SessionToken


def generate_token() -> str:
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _live_session(token: str) -> SessionToken | None:
    if not token:
        return None
    return (
        db.session.query(SessionToken)
        .filter_by(token_hash=hash_token(token), is_revoked=False)
        .first()
    )


def _mark_revoked(sessions, reason: str) -> None:
    now = utcnow()
    for session in sessions:
        session.is_revoked = True
        session.revoked_at = now
        session.revoked_reason = reason
    db.session.commit()


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    """Open a session for user_id. The plaintext token is only ever returned here."""
    if db.session.get(User, user_id) is None:
        raise ValueError("User not found")

    token = generate_token()
    now = utcnow()
    session = SessionToken(
        user_id=user_id,
        token_hash=hash_token(token),
        created_at=now,
        last_used_at=now,
        expires_at=now + SESSION_ABSOLUTE_TIMEOUT,
        user_agent=(user_agent or "")[:512] or None,
        ip_address=ip_address,
    )
    db.session.add(session)
    db.session.commit()
    return session, token


def validate_session(token: str) -> SessionContext | None:
    """
    Resolve a bearer token to its session, or None when it is unknown,
    revoked, expired, idle too long or owned by a deactivated user.
    Touches last_used_at on success.
    """
    session = _live_session(token)
    if session is None:
        return None

    now = utcnow()
    if session.is_expired(now):
        return None
    if session.is_idle(now, SESSION_IDLE_TIMEOUT):
        _mark_revoked([session], "Idle timeout")
        return None
    if session.user is None or not session.user.is_active:
        _mark_revoked([session], "User account deactivated")
        return None

    session.last_used_at = now
    db.session.commit()
    return SessionContext(user=session.user, session=session)


def revoke_session(token: str, reason: str = "User logout") -> bool:
    session = _live_session(token)
    if session is None:
        return False
    _mark_revoked([session], reason)
    return True


def revoke_all_user_sessions(user_id: int, reason: str = "Revoke all sessions") -> int:
    sessions = db.session.query(SessionToken).filter_by(user_id=user_id, is_revoked=False).all()
    _mark_revoked(sessions, reason)
    return len(sessions)
