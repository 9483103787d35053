# models/__init__.py
# Import all models here so that:
# 1. Alembic's env.py can import this single module and detect all tables.
# 2. SQLAlchemy relationship() calls resolve correctly (all classes in same metadata).
# Order matters: models with no foreign keys first, then dependents.

from origin_api.models.user import User
from origin_api.models.otp import OTPRecord
from origin_api.models.revoked_token import RevokedToken
from origin_api.models.product import Product, Sale
from origin_api.models.notification import Notification
from origin_api.models.audit_log import AuditLog

__all__ = [
    "User",
    "OTPRecord",
    "RevokedToken",
    "Product",
    "Sale",
    "Notification",
    "AuditLog",
]
