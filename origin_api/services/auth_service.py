"""
Auth service: the account lifecycle, combining the lower-level services.
Keeps routers thin; routers only handle HTTP, services handle logic.

Per-email lifecycle:
  UNREGISTERED --register--> PENDING_VERIFICATION --verify_otp--> VERIFIED
  VERIFIED --login--> AUTHENTICATED (token issued) --logout--> VERIFIED (token revoked)
  VERIFIED --forgot_password--> RESET_PENDING --reset_password--> VERIFIED
Admin-created accounts start VERIFIED.
"""
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from jwt.exceptions import InvalidTokenError

from origin_api.models.user import User
from origin_api.core.security import (
    hash_password, verify_password, create_access_token, decode_access_token, token_expiry, pwd_context,
)
from origin_api.core.exceptions import (
    ConflictException, InvalidCredentialsException, InvalidOTPException, InvalidTokenException,
    MailDeliveryException, NotVerifiedException,
)
from origin_api.middleware.audit_middleware import log_admin_action
from origin_api.schemas.auth import RegisterRequest, CreateUserRequest
from origin_api.services import email_service, otp_service, token_registry

logger = logging.getLogger(__name__)

# Pre-computed bcrypt hash used ONLY for constant-time comparison when the user
# doesn't exist; prevents timing attacks that reveal valid email addresses.
# Generated once at module load. Never stored anywhere or used for real auth.
_DUMMY_HASH: str = pwd_context.hash("__dummy_timing_prevention__")

DUPLICATE_EMAIL_MESSAGE = "User with this email already exists"
FORGOT_PASSWORD_MESSAGE = "If the email exists, an OTP has been sent."


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()


def issue_token(user: User) -> str:
    return create_access_token(user.id, user.email, user.role)


def _insert_user(db: Session, payload, role: str, is_verified: bool) -> User:
    if get_user_by_email(db, payload.email):
        raise ConflictException(DUPLICATE_EMAIL_MESSAGE)

    user = User(
        email=payload.email,
        hashed_password=hash_password(payload.password),
        role=role,
        first_name=payload.first_name,
        last_name=payload.last_name,
        phone=payload.phone,
        is_verified=is_verified,
    )
    db.add(user)
    return user


def register_user(db: Session, payload: RegisterRequest) -> tuple[User, str]:
    """
    Creates an unverified client account and its first OTP in one commit.
    Returns (user, raw_otp); the caller delivers the OTP by email.
    """
    user = _insert_user(db, payload, role="client", is_verified=False)
    raw_otp = otp_service.store_otp(db, payload.email, commit=False)

    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email
        db.rollback()
        raise ConflictException(DUPLICATE_EMAIL_MESSAGE)

    db.refresh(user)
    logger.info(f"Registered user id={user.id}, awaiting email verification")
    return user, raw_otp


def verify_otp(db: Session, email: str, otp: str) -> tuple[User, str]:
    """
    Consumes the OTP, marks the account verified and issues a session token.
    Returns (user, access_token).
    """
    if not otp_service.consume_otp(db, email, otp, commit=False):
        raise InvalidOTPException()

    user = get_user_by_email(db, email)
    if not user:
        db.commit()  # still burn the code
        raise InvalidOTPException()

    user.is_verified = True
    db.commit()
    db.refresh(user)

    logger.info(f"User id={user.id} verified email")
    return user, issue_token(user)


def resend_otp(db: Session, email: str) -> Optional[str]:
    """
    Issues a fresh verification OTP for an account that is still unverified.
    Returns the raw OTP, or None when there's nothing to verify; the caller
    answers the same way in both cases.
    """
    user = get_user_by_email(db, email)
    if not user or user.is_verified:
        return None
    return otp_service.store_otp(db, email)


def authenticate(db: Session, email: str, password: str) -> User:
    """
    Validates credentials and returns the user.

    Security: always use the same error for "unknown email" and "wrong password"
    (prevents user enumeration). The unverified check only runs once the
    password is proven correct.
    """
    user = get_user_by_email(db, email)
    # Always run verify_password regardless of whether the user exists.
    # This makes the response time identical for "wrong email" vs "wrong password".
    password_ok = verify_password(password, user.hashed_password if user else _DUMMY_HASH)

    if not user or not password_ok:
        raise InvalidCredentialsException()
    if not user.is_verified:
        raise NotVerifiedException()
    return user


async def request_password_reset(db: Session, email: str) -> str:
    """
    Sends a password-reset OTP if the account exists.

    Always returns the same message; never reveal account existence.
    Delivery is awaited: if the mail can't be sent the caller gets an error,
    because the emailed code is the only way to finish the reset.

    The new code is committed only once the mail went out; on a failed send
    the previous code for this email (e.g. a pending registration code) stays live.
    """
    user = get_user_by_email(db, email)
    if user:
        raw_otp = otp_service.store_otp(db, email, commit=False)
        try:
            await email_service.send_otp_email(email, raw_otp, "forgot_password")
        except Exception:
            db.rollback()
            logger.exception(f"Failed to send password reset OTP to {email}")
            raise MailDeliveryException("Failed to send password reset email")
        db.commit()
    return FORGOT_PASSWORD_MESSAGE


def reset_password(db: Session, email: str, otp: str, new_password: str) -> None:
    """
    Consumes the OTP then stores the new password. A successful reset also
    verifies the account. Does not log the user in.
    """
    if not otp_service.consume_otp(db, email, otp, commit=False):
        raise InvalidOTPException()

    user = get_user_by_email(db, email)
    if not user:
        db.commit()
        raise InvalidOTPException()

    user.hashed_password = hash_password(new_password)
    # The code proved control of the mailbox
    user.is_verified = True
    db.commit()
    logger.info(f"Password reset for user id={user.id}")


def logout(db: Session, token: str) -> None:
    """Revokes `token` until its own expiry. Raises InvalidTokenException if it doesn't verify."""
    try:
        payload = decode_access_token(token)
    except InvalidTokenError:
        raise InvalidTokenException()

    token_registry.revoke(db, payload["jti"], token_expiry(payload))
    logger.info(f"Token revoked for user id={payload['sub']}")


def create_user(db: Session, payload: CreateUserRequest, actor_id: Optional[int] = None) -> User:
    """Admin-only account creation. The account starts verified and the creation is audited."""
    user = _insert_user(db, payload, role=payload.role, is_verified=True)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictException(DUPLICATE_EMAIL_MESSAGE)

    db.refresh(user)
    logger.info(f"Admin created user id={user.id} role={user.role}")
    log_admin_action(db, admin_id=actor_id, action="CREATE_USER",
                     target_type="user", target_id=user.id,
                     details={"email": user.email, "role": user.role})
    return user


def ensure_initial_admin(db: Session, email: str, password: str) -> Optional[User]:
    """
    Bootstraps the first administrator so that /auth/create-user is reachable.
    No-op if an account with that email already exists.
    """
    if get_user_by_email(db, email):
        return None
    admin = User(
        email=email,
        hashed_password=hash_password(password),
        role="admin",
        first_name="Admin",
        last_name="User",
        is_verified=True,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    logger.info(f"Initial admin account created: {email}")
    return admin
