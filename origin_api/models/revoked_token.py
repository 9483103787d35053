from sqlalchemy import Column, Integer, String, TIMESTAMP
from sqlalchemy.sql import func
from origin_api.database import Base


class RevokedToken(Base):
    """
    Access tokens invalidated by logout before their natural expiry.

    Keyed by the token's `jti` claim. Kept in the database (not process memory)
    so every worker process sees the same revocations. An entry is meaningless
    once expires_at has passed; the token would fail its own exp check; and
    is purged on the next revocation write.
    """
    __tablename__ = "revoked_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    jti = Column(String(64), unique=True, nullable=False, index=True)
    expires_at = Column(TIMESTAMP(timezone=True), nullable=False, index=True)
    revoked_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
