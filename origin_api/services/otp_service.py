"""
OTP service: generation, storage (hashed), and verification.

Security design decisions:
  1. Raw OTP is NEVER stored; only bcrypt hash. If DB is breached, OTPs are useless.
  2. One row per email: a new OTP request overwrites the previous code and
     resets the attempt counter, so the old code stops working immediately.
  3. OTPs expire after OTP_EXPIRY_MINUTES (server-side check in the query).
  4. secrets.randbelow() is cryptographically secure (unlike random.randint).
  5. A consumed OTP row is deleted; the same code can't be replayed.
  6. Brute-force of 6-digit code is slowed by slowapi rate limiting at the HTTP layer.
"""
import logging
import secrets
from datetime import datetime, timedelta, timezone
from sqlalchemy.orm import Session

from origin_api.config import settings
from origin_api.models.otp import OTPRecord
from origin_api.core.security import pwd_context

logger = logging.getLogger(__name__)

OTP_EXPIRY_MINUTES = settings.otp_expire_minutes


def generate_otp() -> str:
    """
    Generate a cryptographically secure 6-digit OTP.
    secrets.randbelow(900000) gives 0–899999, +100000 gives 100000–999999.
    Always 6 digits; no leading zero issues.
    """
    return str(secrets.randbelow(900000) + 100000)


def store_otp(db: Session, email: str, commit: bool = True) -> str:
    """
    Issues a fresh OTP for `email` and returns the raw code.

    Upserts the single row for this email: hash, expiry and attempts are all
    replaced. Pass commit=False to let the caller commit it together with
    other writes (registration does).
    """
    raw_otp = generate_otp()
    otp_hash = pwd_context.hash(raw_otp)
    expires_at = datetime.now(timezone.utc) + timedelta(minutes=OTP_EXPIRY_MINUTES)

    record = db.query(OTPRecord).filter(OTPRecord.email == email).first()
    if record:
        record.otp_hash = otp_hash
        record.expires_at = expires_at
        record.attempts = 0
    else:
        db.add(OTPRecord(email=email, otp_hash=otp_hash, expires_at=expires_at, attempts=0))

    if commit:
        db.commit()

    logger.info(f"OTP issued for {email}")
    # Returned raw to the caller, who passes it to email_service; never stored
    return raw_otp


def consume_otp(db: Session, email: str, otp: str, commit: bool = True) -> bool:
    """
    Checks `otp` against the live code for `email`.

    Returns True if valid, False otherwise. Valid means: a row exists, it has
    not expired, and bcrypt.verify(otp, stored_hash) passes.
    On success the row is deleted (one-time use). On a mismatch the attempt
    counter is bumped.
    """
    record = (
        db.query(OTPRecord)
        .filter(
            OTPRecord.email == email,
            OTPRecord.expires_at > datetime.now(timezone.utc),
        )
        .first()
    )

    if not record:
        return False

    if not pwd_context.verify(otp, record.otp_hash):
        record.attempts += 1
        db.commit()
        logger.warning(f"Wrong OTP for {email} (attempt {record.attempts})")
        return False

    db.delete(record)
    if commit:
        db.commit()
    return True
