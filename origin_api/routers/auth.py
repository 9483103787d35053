"""
Auth router: registration, OTP verification, login, logout, password reset,
and admin-side account creation.

OTP flow for registration:
  1. POST /auth/register    → create user (unverified) + email OTP (best-effort)
  2. POST /auth/verify-otp  → verify OTP → mark verified → return token
  (POST /auth/resend-otp issues a fresh code if the first one got lost)

Login:
  POST /auth/login → validate credentials (must be verified) → return token

Logout:
  DELETE /auth/logout → revoke the presented bearer token until it expires

Password reset:
  1. POST /auth/forgot-password → email OTP (uniform reply, never reveals if email exists)
  2. POST /auth/reset-password  → verify OTP + set new password
"""
from fastapi import APIRouter, Depends, BackgroundTasks, Request
from sqlalchemy.orm import Session

from origin_api.database import get_db
from origin_api.core.rate_limiter import limiter
from origin_api.core.dependencies import oauth2_scheme, get_token_payload, get_current_user, get_current_admin
from origin_api.models.user import User
from origin_api.schemas.auth import (
    RegisterRequest, VerifyOTPRequest, ResendOTPRequest, LoginRequest,
    ForgotPasswordRequest, ResetPasswordRequest, CreateUserRequest,
    MessageResponse, RegisterResponse, VerifyOTPResponse, LoginResponse, CreateUserResponse,
)
from origin_api.schemas.user import UserOut
from origin_api.services import auth_service, email_service

router = APIRouter()


# ── Register ──────────────────────────────────────────────────────────────────

@router.post("/register", response_model=RegisterResponse, status_code=201)
@limiter.limit("5/minute")
async def register(
    request: Request,
    body: RegisterRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    """
    Step 1 of registration.
    Creates an unverified account and emails an OTP.
    Mail failure does not fail registration; the user can ask for a resend.
    """
    user, raw_otp = auth_service.register_user(db, body)

    background_tasks.add_task(
        email_service.deliver_best_effort, email_service.send_otp_email, user.email, raw_otp, "register"
    )

    return {
        "message": "Registration successful. Please check your email for verification.",
        "email": user.email,
    }


@router.post("/verify-otp", response_model=VerifyOTPResponse)
@limiter.limit("10/minute")
async def verify_otp(
    request: Request,
    body: VerifyOTPRequest,
    db: Session = Depends(get_db),
):
    """Step 2 of registration: verify OTP and receive an access token."""
    user, access_token = auth_service.verify_otp(db, email=body.email, otp=body.otp)
    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user": UserOut.model_validate(user),
        "message": "Email verified successfully",
    }


@router.post("/resend-otp", response_model=MessageResponse)
@limiter.limit("3/minute")
async def resend_otp(
    request: Request,
    body: ResendOTPRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    """
    Resend the verification OTP for an unverified account.
    Always returns 200 with the same message to prevent email enumeration.
    """
    raw_otp = auth_service.resend_otp(db, body.email)
    if raw_otp:
        background_tasks.add_task(
            email_service.deliver_best_effort, email_service.send_otp_email, body.email, raw_otp, "register"
        )
    return {"message": "If the account is awaiting verification, a new OTP has been sent."}


# ── Login / Logout ────────────────────────────────────────────────────────────

@router.post("/login", response_model=LoginResponse)
@limiter.limit("10/minute")
async def login(
    request: Request,
    body: LoginRequest,
    db: Session = Depends(get_db),
):
    """Login with email and password. Returns the access token and the user's role."""
    user = auth_service.authenticate(db, email=body.email, password=body.password)
    return {
        "access_token": auth_service.issue_token(user),
        "token_type": "bearer",
        "role": user.role,
    }


@router.delete("/logout", response_model=MessageResponse)
async def logout(
    token: str = Depends(oauth2_scheme),
    _payload: dict = Depends(get_token_payload),
    db: Session = Depends(get_db),
):
    """
    Revoke the bearer token used for this request.
    get_token_payload has already rejected bad, expired and revoked tokens.
    """
    auth_service.logout(db, token)
    return {"message": "Successfully logged out"}


@router.get("/me", response_model=UserOut)
def read_me(current_user: User = Depends(get_current_user)):
    return current_user


# ── Forgot / Reset Password ───────────────────────────────────────────────────

@router.post("/forgot-password", response_model=MessageResponse)
@limiter.limit("3/minute")
async def forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    db: Session = Depends(get_db),
):
    """
    Send password reset OTP.
    Same reply whether or not the email exists. If it does exist and the mail
    can't be delivered, the caller gets a 503 instead of a false success.
    """
    message = await auth_service.request_password_reset(db, body.email)
    return {"message": message}


@router.post("/reset-password", response_model=MessageResponse)
@limiter.limit("5/minute")
async def reset_password(
    request: Request,
    body: ResetPasswordRequest,
    db: Session = Depends(get_db),
):
    """Verify OTP and set a new password."""
    auth_service.reset_password(db, email=body.email, otp=body.otp, new_password=body.new_password)
    return {"message": "Password updated successfully"}


# ── Admin: create user ────────────────────────────────────────────────────────

@router.post("/create-user", response_model=CreateUserResponse, status_code=201)
async def create_user(
    body: CreateUserRequest,
    background_tasks: BackgroundTasks,
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    """Admin-only: create a pre-verified account of any role."""
    user = auth_service.create_user(db, body, actor_id=admin.id)

    background_tasks.add_task(
        email_service.deliver_best_effort,
        email_service.send_account_created_email,
        user.email, user.first_name, user.last_name,
    )

    return {"message": "User created successfully", "user": UserOut.model_validate(user)}
