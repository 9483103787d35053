from sqlalchemy import Column, Integer, String, TIMESTAMP, ForeignKey, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from origin_api.database import Base


class AuditLog(Base):
    """
    Immutable audit trail for privileged actions.
    Records are INSERT-only; never updated or deleted.

    Examples of actions recorded:
      CREATE_USER, CREATE_PRODUCT, UPDATE_PRODUCT, DELETE_PRODUCT,
      ADJUST_STOCK, ADJUST_PRICE, SELL_PRODUCT, REVERSE_SALE
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    admin_id = Column(
        Integer,
        # SET NULL: preserve log even if the acting account is deleted
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    action = Column(String(100), nullable=False, index=True)
    # What kind of entity was affected: "user", "product", "sale"
    target_type = Column(String(50), nullable=True)
    target_id = Column(String(100), nullable=True, index=True)
    # e.g. {"quantity": 3, "total_amount": "29.97"}
    details = Column(JSON, nullable=True)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now(), index=True)

    # ── Relationships ──────────────────────────────────────────────────────────
    admin = relationship("User", back_populates="audit_logs", foreign_keys=[admin_id])
