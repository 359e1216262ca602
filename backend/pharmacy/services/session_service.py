# Overview: Service-layer operations for sessions; opaque bearer tokens carrying a claims snapshot.

"""
Session Token Management Service

WHY: Secure session management with automatic timeout and revocation.
Tokens are cryptographically secure, hashed in database, and time-limited.

CLAIMS: Each session stores a snapshot of the user's role, pharmacy,
branch, manager flag and custom grants. Authenticated requests build their
Principal from this snapshot (the token principal). Pharmacy assignments
are not part of it; access validation loads them on demand. The snapshot is
refreshed whenever those fields change (refresh_session_claims), so
permission edits apply to live sessions.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage
- Absolute timeout (SESSION_ABSOLUTE_TIMEOUT_HOURS)
- Idle timeout (SESSION_IDLE_TIMEOUT_MINUTES)
- Revocable on logout, deactivation or pharmacy shutdown
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User
from ..permissions import Principal, Role
from ..time_utils import utcnow


@dataclass
class SessionContext:
    """
    Everything an authenticated request needs.

    principal is built from the session claims, not from the user row.
    """
    user: User
    session: SessionToken
    principal: Principal


def _absolute_timeout() -> timedelta:
    return timedelta(hours=current_app.config.get("SESSION_ABSOLUTE_TIMEOUT_HOURS", 24))


def _idle_timeout() -> timedelta:
    return timedelta(minutes=current_app.config.get("SESSION_IDLE_TIMEOUT_MINUTES", 120))


def generate_token() -> str:
    """
    Generate cryptographically secure random token.

    Returns 64-character hex string (32 bytes of entropy).
    This is the plaintext token sent to client (never stored).
    """
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """SHA-256 of the token; tokens are high-entropy so a fast hash is enough."""
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def build_claims(user: User) -> dict:
    return Principal.from_user(user).to_claims()


def _pharmacy_is_active(user: User) -> bool:
    if user.role == Role.SUPER_ADMIN or user.pharmacy_id is None:
        return True
    return bool(user.pharmacy and user.pharmacy.is_active)


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None
) -> tuple[SessionToken, str]:
    """
    Create new session token for a user.

    Returns (session_record, plaintext_token).
    Client receives plaintext_token, database stores only the hash.

    Raises ValueError if the user is missing or inactive, or their pharmacy is inactive.
    """
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user:
        raise ValueError("User not found")
    if not user.is_active:
        raise ValueError("User account is not active")
    if user.role != Role.SUPER_ADMIN and user.pharmacy_id is None:
        raise ValueError("User must belong to a pharmacy")
    if not _pharmacy_is_active(user):
        raise ValueError("Pharmacy is not active")

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user_id,
        token_hash=hash_token(plaintext_token),
        claims=build_claims(user),
        created_at=now,
        last_used_at=now,
        expires_at=now + _absolute_timeout(),
        user_agent=user_agent,
        ip_address=ip_address,
        is_revoked=False,
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def _revoke(session: SessionToken, reason: str, now) -> None:
    session.is_revoked = True
    session.revoked_at = now
    session.revoked_reason = reason
    db.session.commit()


def validate_session(token: str) -> SessionContext | None:
    """
    Validate session token and return SessionContext if valid.

    Returns None if:
    - Token is invalid, expired, or revoked
    - User account is deactivated
    - User's pharmacy is deactivated

    Updates last_used_at on successful validation.
    """
    now = utcnow()

    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return None

    if session.expires_at < now:
        return None

    if now - session.last_used_at > _idle_timeout():
        _revoke(session, "Idle timeout", now)
        return None

    user = session.user
    if not user or not user.is_active:
        _revoke(session, "User account deactivated", now)
        return None

    if not _pharmacy_is_active(user):
        _revoke(session, "Pharmacy deactivated", now)
        return None

    session.last_used_at = now
    db.session.commit()

    return SessionContext(
        user=user,
        session=session,
        principal=Principal.from_claims(session.claims or {}),
    )


def refresh_session_claims(user_id: int) -> int:
    """
    Rewrite the claims snapshot on every active session of a user.

    Returns count of sessions refreshed.
    """
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user:
        return 0

    claims = build_claims(user)
    sessions = db.session.query(SessionToken).filter_by(
        user_id=user_id,
        is_revoked=False
    ).all()

    for session in sessions:
        session.claims = dict(claims)

    db.session.commit()
    return len(sessions)


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """
    Revoke session token.

    Returns True if session was revoked, False if not found.
    """
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return False

    _revoke(session, reason, utcnow())
    return True


def revoke_all_user_sessions(user_id: int, reason: str = "Revoke all sessions") -> int:
    """
    Revoke all active sessions for a user.

    Returns count of sessions revoked.
    """
    now = utcnow()

    sessions = db.session.query(SessionToken).filter_by(
        user_id=user_id,
        is_revoked=False
    ).all()

    for session in sessions:
        session.is_revoked = True
        session.revoked_at = now
        session.revoked_reason = reason

    db.session.commit()
    return len(sessions)


def cleanup_expired_sessions(retention_days: int = 30) -> int:
    """
    Delete expired or revoked sessions older than the retention window.

    Returns count of sessions deleted.
    """
    now = utcnow()
    cutoff = now - timedelta(days=retention_days)

    deleted = db.session.query(SessionToken).filter(
        db.or_(
            SessionToken.expires_at < now,
            SessionToken.is_revoked.is_(True)
        ),
        SessionToken.created_at < cutoff
    ).delete(synchronize_session=False)

    db.session.commit()
    return deleted
