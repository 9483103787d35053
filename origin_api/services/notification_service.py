"""
In-app notifications, mainly the "tell every admin" broadcast used by the shop.
"""
import logging
from sqlalchemy.orm import Session

from origin_api.models.user import User
from origin_api.models.notification import Notification

logger = logging.getLogger(__name__)


def notify_admins(db: Session, title: str, message: str, type: str = "shop_update") -> int:
    """Insert one notification per admin account and commit. Returns how many were created."""
    admin_ids = [row.id for row in db.query(User.id).filter(User.role == "admin").all()]
    for admin_id in admin_ids:
        db.add(Notification(user_id=admin_id, title=title, message=message, type=type))
    db.commit()
    return len(admin_ids)


def notify_admins_best_effort(db: Session, title: str, message: str, type: str = "shop_update") -> None:
    """
    Same as notify_admins, but a failure is logged and rolled back instead of raised.
    Call it only AFTER the primary operation has committed.
    """
    try:
        notify_admins(db, title, message, type)
    except Exception:
        db.rollback()
        logger.exception(f"Failed to notify admins: {title}")
