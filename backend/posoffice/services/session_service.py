# Overview: Service-layer operations for sessions; opaque bearer tokens with expiry and revocation.

"""
Session Token Management Service

Tokens are 32 random bytes sent to the client once; only their SHA-256
hash is stored. A session ends at the absolute timeout, after the idle
timeout without use, or on revocation (logout, password change,
deactivation).

Timeouts come from SESSION_TTL_HOURS / SESSION_IDLE_MINUTES.
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..errors import ForbiddenError, InvalidCredentialError
from ..models import SessionToken, User
from ..time_utils import utcnow

# Defaults when no app config is present
SESSION_ABSOLUTE_TIMEOUT = timedelta(hours=24)
SESSION_IDLE_TIMEOUT = timedelta(hours=2)

# Revoked/expired rows are kept this long for auditing
SESSION_RETENTION = timedelta(days=30)


@dataclass
class SessionContext:
    """Who is calling: the user and the session record that proved it."""
    user: User
    session: SessionToken

    @property
    def identity(self) -> dict:
        return {"id": self.user.id, "role": self.user.role, "email": self.user.email}


def _absolute_timeout() -> timedelta:
    hours = current_app.config.get("SESSION_TTL_HOURS") if current_app else None
    return timedelta(hours=hours) if hours else SESSION_ABSOLUTE_TIMEOUT


def _idle_timeout() -> timedelta:
    minutes = current_app.config.get("SESSION_IDLE_MINUTES") if current_app else None
    return timedelta(minutes=minutes) if minutes else SESSION_IDLE_TIMEOUT


def generate_token() -> str:
    """64 hex characters from the OS CSPRNG. Sent to the client, never stored."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """SHA-256 is enough here: tokens are high-entropy, unlike passwords."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_session(
    session,
    user: User,
    *,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    """Returns (session_record, plaintext_token)."""
    plaintext_token = generate_token()
    now = utcnow()

    record = SessionToken(
        user_id=user.id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + _absolute_timeout(),
        user_agent=(user_agent or "")[:255] or None,
        ip_address=ip_address,
        is_revoked=False,
    )
    session.add(record)
    session.commit()
    return record, plaintext_token


def _revoke(record: SessionToken, reason: str, now) -> None:
    record.is_revoked = True
    record.revoked_at = now
    record.revoked_reason = reason


def validate_session(session, token: str) -> SessionContext:
    """
    Resolve a presented token to its user.

    Raises:
        InvalidCredentialError: unknown, expired, idle or revoked token
        ForbiddenError: the account behind a valid token is inactive

    Updates last_used_at on success.
    """
    now = utcnow()
    record = (
        session.query(SessionToken)
        .filter_by(token_hash=hash_token(token), is_revoked=False)
        .first()
    )
    if record is None:
        raise InvalidCredentialError("Invalid or expired token")

    if record.expires_at < now:
        raise InvalidCredentialError("Invalid or expired token")

    if now - record.last_used_at > _idle_timeout():
        _revoke(record, "Idle timeout", now)
        session.commit()
        raise InvalidCredentialError("Session expired due to inactivity")

    user = record.user
    if user is None:
        raise InvalidCredentialError("Invalid or expired token")
    if not user.is_active:
        raise ForbiddenError("Account is inactive")

    record.last_used_at = now
    session.commit()
    return SessionContext(user=user, session=record)


def revoke_session(session, token: str, reason: str = "User logout") -> bool:
    """Returns True if a live session was revoked."""
    record = (
        session.query(SessionToken)
        .filter_by(token_hash=hash_token(token), is_revoked=False)
        .first()
    )
    if record is None:
        return False
    _revoke(record, reason, utcnow())
    session.commit()
    return True


def revoke_all_user_sessions(session, user_id: int, reason: str = "Revoke all sessions", *, commit: bool = True) -> int:
    """
    Revoke every live session of a user. Returns the count.

    commit=False leaves the change in the caller's unit of work.
    """
    now = utcnow()
    records = session.query(SessionToken).filter_by(user_id=user_id, is_revoked=False).all()
    for record in records:
        _revoke(record, reason, now)
    if commit:
        session.commit()
    return len(records)


def cleanup_expired_sessions(session) -> int:
    """Delete expired or revoked sessions older than the retention window."""
    now = utcnow()
    deleted = (
        session.query(SessionToken)
        .filter(
            (SessionToken.expires_at < now) | (SessionToken.is_revoked.is_(True)),
            SessionToken.created_at < now - SESSION_RETENTION,
        )
        .delete(synchronize_session=False)
    )
    session.commit()
    return deleted
