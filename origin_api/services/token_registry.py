"""
Revocation registry for access tokens (logout).

Stored in the relational database so that every worker process agrees on
which tokens are dead. An entry only has to live until the token's own exp:
after that the JWT check rejects the token anyway, so expired entries are
ignored on read and purged on each write.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from origin_api.models.revoked_token import RevokedToken

logger = logging.getLogger(__name__)


def purge_expired(db: Session) -> int:
    """Delete entries whose token has expired. Caller commits."""
    return (
        db.query(RevokedToken)
        .filter(RevokedToken.expires_at <= datetime.now(timezone.utc))
        .delete(synchronize_session=False)
    )


def revoke(db: Session, jti: str, expires_at: datetime) -> None:
    """
    Mark a token as revoked until expires_at. Revoking the same jti twice is a no-op.
    """
    purged = purge_expired(db)
    if purged:
        logger.info(f"Purged {purged} expired revocation entries")

    if db.query(RevokedToken.id).filter(RevokedToken.jti == jti).first() is None:
        db.add(RevokedToken(jti=jti, expires_at=expires_at))

    try:
        db.commit()
    except IntegrityError:
        # Another request revoked the same token between our check and insert
        db.rollback()


def is_revoked(db: Session, jti: str) -> bool:
    return (
        db.query(RevokedToken.id)
        .filter(
            RevokedToken.jti == jti,
            RevokedToken.expires_at > datetime.now(timezone.utc),
        )
        .first()
        is not None
    )
