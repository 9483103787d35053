"""
Email service using fastapi-mail over SMTP.

Gmail setup steps (do this once):
  1. Enable 2-Factor Authentication on the sending Gmail account
  2. Go to: Google Account → Security → App Passwords
  3. Create an app password for "Mail"
  4. Use that 16-character password as MAIL_PASSWORD in your .env
     (NOT the real Gmail password)

Delivery policy is decided by the caller:
  - registration / resend / admin-created account: best-effort, wrap the call
    in deliver_best_effort(); a failure is logged, the request still succeeds.
  - password reset: awaited directly; a failure must reach the user because
    the emailed code is their only way back in.
"""
import logging

from fastapi_mail import FastMail, MessageSchema, ConnectionConfig, MessageType
from origin_api.config import settings

logger = logging.getLogger(__name__)

# Build connection config once at module level; don't rebuild on every request
mail_config = ConnectionConfig(
    MAIL_USERNAME=settings.mail_username,
    MAIL_PASSWORD=settings.mail_password,
    MAIL_FROM=settings.mail_from,
    MAIL_PORT=settings.mail_port,
    MAIL_SERVER=settings.mail_server,
    MAIL_FROM_NAME="Origin Technologies",
    MAIL_STARTTLS=True,    # required for port 587 (STARTTLS)
    MAIL_SSL_TLS=False,    # don't use SSL on port 587
    USE_CREDENTIALS=bool(settings.mail_username),
    VALIDATE_CERTS=True,
    SUPPRESS_SEND=int(settings.mail_suppress_send),
)

fast_mail = FastMail(mail_config)

OTP_SUBJECTS = {
    "register": "Verify Your Email - Origin Technologies",
    "forgot_password": "Password Reset - Origin Technologies",
}


async def send_otp_email(email_to: str, otp: str, purpose: str) -> None:
    """
    Send an OTP email.

    Args:
        email_to: recipient email address
        otp: the raw 6-digit OTP string (never stored raw in DB)
        purpose: "register" | "forgot_password"
    """
    if purpose == "forgot_password":
        body = (
            f"Your Origin Technologies password reset code is: {otp}\n\n"
            f"This code is valid for {settings.otp_expire_minutes} minutes.\n"
            f"If you did not request a password reset, please ignore this email."
        )
    else:
        body = (
            f"Welcome to Origin Technologies!\n\n"
            f"Your verification code is: {otp}\n\n"
            f"This code is valid for {settings.otp_expire_minutes} minutes.\n"
            f"Do not share this with anyone.\n\n"
            f"If you did not create an account, please ignore this email."
        )

    message = MessageSchema(
        subject=OTP_SUBJECTS.get(purpose, "Your OTP Code"),
        recipients=[email_to],
        body=body,
        subtype=MessageType.plain,
    )

    await fast_mail.send_message(message)


async def send_account_created_email(email_to: str, first_name: str, last_name: str) -> None:
    """Tell a user that an administrator opened an account for them."""
    message = MessageSchema(
        subject="Account Created - Origin Technologies",
        recipients=[email_to],
        body=(
            f"Hello {first_name} {last_name},\n\n"
            f"Your account has been created by an administrator. "
            f"Please contact the admin for your login credentials.\n\n"
            f"Best regards,\n"
            f"Origin Technologies Team"
        ),
        subtype=MessageType.plain,
    )

    await fast_mail.send_message(message)


async def deliver_best_effort(send, *args) -> bool:
    """
    Await `send(*args)` and swallow any failure after logging it.
    Returns True if the mail went out.
    Meant to be scheduled with BackgroundTasks.add_task(deliver_best_effort, ...).
    """
    try:
        await send(*args)
        return True
    except Exception:
        logger.exception(f"Best-effort email via {getattr(send, '__name__', send)} failed")
        return False
