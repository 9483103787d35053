from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Text, TIMESTAMP
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from origin_api.database import Base


class Notification(Base):
    """In-app notification shown in a user's bell menu."""
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    # "shop_update" | "account" | "system"
    type = Column(String(50), nullable=False, default="system")
    is_read = Column(Boolean, nullable=False, default=False, server_default="0")
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now(), index=True)

    # ── Relationships ──────────────────────────────────────────────────────────
    user = relationship("User", back_populates="notifications")
