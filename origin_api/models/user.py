from sqlalchemy import Boolean, Column, Integer, String, TIMESTAMP, Enum as SAEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from origin_api.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # Email is the login identity and the OTP key; never updated after insert.
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String, nullable=False)
    role = Column(
        SAEnum("admin", "controller", "client", name="user_role"),
        nullable=False,
        server_default="client",
    )
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    phone = Column(String(30), nullable=True)

    # Only admin-created accounts start verified
    is_verified = Column(Boolean, server_default="0", nullable=False, default=False)

    # Timestamps
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────────
    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")
    audit_logs = relationship(
        "AuditLog",
        back_populates="admin",
        foreign_keys="[AuditLog.admin_id]",
    )
