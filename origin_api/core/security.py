"""
Security utilities: password hashing and JWT token management.
Uses PyJWT (not python-jose); actively maintained, no known CVEs.
"""
import uuid
import jwt
from jwt.exceptions import InvalidTokenError
from passlib.context import CryptContext
from datetime import datetime, timedelta, timezone
from origin_api.config import settings

# ── Password Hashing ──────────────────────────────────────────────────────────
# bcrypt is the industry standard for password hashing.
# deprecated="auto" means passlib will auto-upgrade old hashes on next login.
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


# ── JWT Token Creation ────────────────────────────────────────────────────────

def create_access_token(user_id, email: str, role: str) -> str:
    """
    Session token (default 60 min) carrying subject id, email and role.

    jti is a random id per token; logout revokes by jti so the registry never
    has to hold raw tokens.
    PyJWT 2.x note: jwt.encode() returns str directly; no need to call .decode().
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),      # 'sub' must be a string for PyJWT >= 2.10
        "email": email,
        "role": role,
        "type": "access",
        "jti": uuid.uuid4().hex,
        "iat": now,
        "exp": now + timedelta(minutes=settings.access_token_expire_minutes),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> dict:
    """
    Decodes and validates an access token (signature, exp, token type).
    Raises jwt.exceptions.InvalidTokenError (or subclass) on any failure.
    The caller is responsible for converting this into an HTTPException.
    """
    payload = jwt.decode(
        token,
        settings.secret_key,
        algorithms=[settings.algorithm],
        options={"require": ["exp", "sub", "jti"]},
    )
    if payload.get("type") != "access":
        raise InvalidTokenError("Not an access token")
    return payload


def token_expiry(payload: dict) -> datetime:
    """exp claim of a decoded token as an aware UTC datetime."""
    return datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
