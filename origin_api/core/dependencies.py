"""
FastAPI dependencies used across routers.
Keep this file lean; only auth/DB dependencies go here.
Business logic belongs in services/.
"""
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from jwt.exceptions import InvalidTokenError

from origin_api.database import get_db
from origin_api.core.security import decode_access_token
from origin_api.core.exceptions import InvalidTokenException, TokenRevokedException, ForbiddenException
from origin_api.core.roles import Role, has_role
from origin_api.models.user import User
from origin_api.services import token_registry

# tokenUrl must match the actual login endpoint path
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def get_token_payload(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> dict:
    """
    Validates the bearer token and returns its claims.

    Checks performed (in order):
    1. Token is a valid JWT signed with our secret key and not expired
    2. Token type is 'access'
    3. Token's jti is not in the revocation registry (logged out)
    """
    try:
        payload = decode_access_token(token)
    except InvalidTokenError:
        raise InvalidTokenException()

    if token_registry.is_revoked(db, payload["jti"]):
        raise TokenRevokedException()

    return payload


def get_current_user(
    payload: dict = Depends(get_token_payload),
    db: Session = Depends(get_db),
) -> User:
    """Returns the User the token was issued to."""
    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise InvalidTokenException()

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise InvalidTokenException()
    return user


def require_roles(*roles: Role):
    """
    Dependency factory: the current user must hold at least one of `roles`
    (directly or through the role hierarchy).

    Usage:
        @router.post("/create-user")
        def create_user(admin: User = Depends(require_roles(Role.ADMIN))): ...
    """
    def _checker(current_user: User = Depends(get_current_user)) -> User:
        if not any(has_role(current_user.role, role) for role in roles):
            raise ForbiddenException()
        return current_user

    return _checker


get_current_admin = require_roles(Role.ADMIN)
get_shop_operator = require_roles(Role.CONTROLLER)
