"""User service - owner lookups and Airtable credential resolution."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.encryption import decrypt_token, encrypt_token
from app.db.models import User

logger = logging.getLogger(__name__)


@dataclass
class TokenResult:
    """Result of credential resolution for a form owner."""

    token: str | None
    needs_reauth: bool


def get_user_by_id(db: Session, user_id: UUID) -> User | None:
    """Get user by ID."""
    return db.query(User).filter(User.id == user_id).first()


def create_user(
    db: Session,
    email: str,
    airtable_user_id: str,
    access_token: str | None = None,
    refresh_token: str | None = None,
    token_expires_at: datetime | None = None,
    display_name: str = "",
) -> User:
    """Create an owner with an already-exchanged Airtable credential."""
    user = User(
        email=email.lower(),
        display_name=display_name,
        airtable_user_id=airtable_user_id,
        airtable_access_token_encrypted=encrypt_token(access_token) if access_token else None,
        airtable_refresh_token_encrypted=encrypt_token(refresh_token) if refresh_token else None,
        airtable_token_expires_at=token_expires_at,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def revoke_all_sessions(db: Session, user_id: UUID) -> bool:
    """
    Revoke all sessions for a user by bumping token_version.

    Returns:
        True if user found and sessions revoked, False if user not found
    """
    user = get_user_by_id(db, user_id)
    if not user:
        return False

    user.token_version += 1
    db.commit()
    return True


def _is_expired(expires_at: datetime | None) -> bool:
    if expires_at is None:
        return False
    if expires_at.tzinfo is None:
        # SQLite returns naive datetimes
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at <= datetime.now(timezone.utc)


def get_airtable_token(user: User | None) -> TokenResult:
    """
    Resolve a usable Airtable access token for a form owner.

    A missing, expired, or undecryptable token all mean the owner has to
    reconnect Airtable; refresh happens in the OAuth flow, not here.
    """
    if user is None or not user.is_active:
        return TokenResult(token=None, needs_reauth=True)
    if not user.airtable_access_token_encrypted:
        return TokenResult(token=None, needs_reauth=True)
    if _is_expired(user.airtable_token_expires_at):
        logger.info("airtable_token_expired", extra={"owner_id": str(user.id)})
        return TokenResult(token=None, needs_reauth=True)

    try:
        token = decrypt_token(user.airtable_access_token_encrypted)
    except ValueError:
        logger.warning("airtable_token_decrypt_failed", extra={"owner_id": str(user.id)})
        return TokenResult(token=None, needs_reauth=True)

    if not token:
        return TokenResult(token=None, needs_reauth=True)
    return TokenResult(token=token, needs_reauth=False)
