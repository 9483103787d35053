from sqlalchemy import Column, Integer, String, TIMESTAMP
from sqlalchemy.sql import func
from origin_api.database import Base


class OTPRecord(Base):
    """
    One live one-time code per email, used for both email verification and
    password reset.

    Security notes:
    - Raw OTP is NEVER stored; only the bcrypt hash.
    - email is UNIQUE: requesting a new code overwrites the previous row and
      resets attempts, so an older code can never be used once replaced.
    - The row is deleted when the code is consumed (single use).
    - Expired rows are unusable but linger until the next write for the email.
    - No FK to users: the row is keyed by email, not by account.
    """
    __tablename__ = "user_otps"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    otp_hash = Column(String, nullable=False)  # bcrypt hash of the raw 6-digit OTP
    expires_at = Column(TIMESTAMP(timezone=True), nullable=False)
    attempts = Column(Integer, nullable=False, default=0, server_default="0")
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
