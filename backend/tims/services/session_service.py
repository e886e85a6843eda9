# Overview: Bearer-token sessions for the TIMS API: issue, validate, revoke, purge.

"""
Session tokens

The client holds a random 64-hex-char token; the database only ever sees its
SHA-256 digest, so a leaked session table cannot be replayed.

Lifetime:
- SESSION_ABSOLUTE_TIMEOUT after issue the token is dead regardless of use
- SESSION_IDLE_TIMEOUT without a request revokes it on next sight
- logout revokes one token; a password change revokes the rest
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from ..extensions import db
from ..models import SessionToken, User
from tims.time_utils import utcnow


SESSION_ABSOLUTE_TIMEOUT = timedelta(hours=24)
SESSION_IDLE_TIMEOUT = timedelta(hours=2)

TOKEN_BYTES = 32


@dataclass
class SessionContext:
    """What require_auth puts on flask.g for the rest of the request."""
    user: User
    session: SessionToken


def generate_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)


def hash_token(token: str) -> str:
    # Tokens carry 256 bits of entropy, a plain digest is enough (no salt/KDF)
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _active_by_token(token: str) -> SessionToken | None:
    return (
        db.session.query(SessionToken)
        .filter(SessionToken.token_hash == hash_token(token), SessionToken.is_revoked.is_(False))
        .first()
    )


def _mark_revoked(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    """
    Issue a token for user_id.

    Returns (row, plaintext_token). The plaintext is not recoverable later.
    Raises ValueError for an unknown or deactivated user.
    """
    user = db.session.get(User, user_id)
    if user is None:
        raise ValueError("User not found")
    if not user.is_active:
        raise ValueError("User account is deactivated")

    token = generate_token()
    issued = utcnow()

    session = SessionToken(
        user_id=user.id,
        token_hash=hash_token(token),
        created_at=issued,
        last_used_at=issued,
        expires_at=issued + SESSION_ABSOLUTE_TIMEOUT,
        is_revoked=False,
        user_agent=(user_agent or "")[:255] or None,
        ip_address=ip_address,
    )
    db.session.add(session)
    db.session.commit()
    return session, token


def validate_session(token: str) -> SessionContext | None:
    """
    Resolve a bearer token to its user, or None.

    Touches last_used_at on success. Idle tokens and tokens of deactivated
    users are revoked on the spot so they stay dead.
    """
    session = _active_by_token(token)
    if session is None:
        return None

    now = utcnow()
    if now >= session.expires_at:
        return None

    if now - session.last_used_at > SESSION_IDLE_TIMEOUT:
        _mark_revoked(session, "Idle timeout")
        db.session.commit()
        return None

    user = session.user
    if user is None or not user.is_active:
        _mark_revoked(session, "User account deactivated")
        db.session.commit()
        return None

    session.last_used_at = now
    db.session.commit()
    return SessionContext(user=user, session=session)


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """Revoke one token. False when it was unknown or already revoked."""
    session = _active_by_token(token)
    if session is None:
        return False
    _mark_revoked(session, reason)
    db.session.commit()
    return True


def revoke_all_user_sessions(
    user_id: int,
    reason: str = "Revoke all sessions",
    *,
    keep_session_id: int | None = None,
) -> int:
    """Revoke every live token of user_id except keep_session_id. Returns how many."""
    query = db.session.query(SessionToken).filter(
        SessionToken.user_id == user_id,
        SessionToken.is_revoked.is_(False),
    )
    if keep_session_id is not None:
        query = query.filter(SessionToken.id != keep_session_id)

    sessions = query.all()
    for session in sessions:
        _mark_revoked(session, reason)
    db.session.commit()
    return len(sessions)


def cleanup_expired_sessions(retention_days: int = 30) -> int:
    """
    Purge dead tokens (expired or revoked) issued more than retention_days ago.

    Returns the number of rows deleted.
    """
    now = utcnow()
    issued_before = now - timedelta(days=retention_days)

    deleted = (
        db.session.query(SessionToken)
        .filter(
            db.or_(SessionToken.expires_at < now, SessionToken.is_revoked.is_(True)),
            SessionToken.created_at < issued_before,
        )
        .delete(synchronize_session=False)
    )
    db.session.commit()
    return deleted
