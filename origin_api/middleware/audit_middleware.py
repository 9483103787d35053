"""
Audit log helper, NOT an HTTP middleware, but a utility function called
explicitly by handlers after performing a privileged state-changing operation.

Why not a real HTTP middleware?
  - HTTP middleware doesn't have access to the request body (consumed by FastAPI)
  - We need structured data (action, target_type, target_id, details)

Usage:
    from origin_api.middleware.audit_middleware import log_admin_action

    log_admin_action(db, admin_id=admin.id, action="CREATE_USER",
                     target_type="user", target_id=user.id,
                     details={"role": "client"})
"""
import logging
from typing import Optional
from sqlalchemy.orm import Session

from origin_api.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


def log_admin_action(
    db: Session,
    admin_id: Optional[int],
    action: str,
    target_type: Optional[str] = None,
    target_id=None,
    details: Optional[dict] = None,
) -> Optional[AuditLog]:
    """
    Insert an immutable audit log record.

    The audit trail is secondary to the action it describes: it is written
    after the action committed, and a failure here is logged, not raised.

    Args:
        db: database session
        admin_id: id of the acting user
        action: string constant like "CREATE_USER", "SELL_PRODUCT", "REVERSE_SALE"
        target_type: entity type affected ("user", "product", "sale")
        target_id: id of the affected entity
        details: optional dict with extra context (amounts, before/after values)
    """
    log = AuditLog(
        admin_id=admin_id,
        action=action,
        target_type=target_type,
        target_id=str(target_id) if target_id is not None else None,
        details=details,
    )
    try:
        db.add(log)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception(f"Failed to write audit log entry {action}")
        return None
    db.refresh(log)
    return log
