"""
Auth schemas: request bodies and responses for registration, OTP, login,
logout, password reset and admin user creation.

JSON bodies use the front end's camelCase names (firstName, newPassword);
populate_by_name lets snake_case through as well.
"""
from pydantic import BaseModel, EmailStr, Field, field_validator, ConfigDict
from typing import Literal, Optional

from origin_api.schemas.user import UserOut


def _check_password(v: str) -> str:
    if len(v) < 8:
        raise ValueError("Password must be at least 8 characters")
    return v


class _ProfileFields(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    password: str
    first_name: str = Field(alias="firstName", min_length=1, max_length=100)
    last_name: str = Field(alias="lastName", min_length=1, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=30)

    @field_validator("password")
    @classmethod
    def password_strong(cls, v: str) -> str:
        return _check_password(v)

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_names(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name must not be blank")
        return v


class RegisterRequest(_ProfileFields):
    pass


class CreateUserRequest(_ProfileFields):
    """Admin-only: full user payload, including the role."""
    role: Literal["admin", "controller", "client"] = "client"


class VerifyOTPRequest(BaseModel):
    email: EmailStr
    otp: str = Field(min_length=1, max_length=12)


class ResendOTPRequest(BaseModel):
    email: EmailStr


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    otp: str = Field(min_length=1, max_length=12)
    new_password: str = Field(alias="newPassword")

    @field_validator("new_password")
    @classmethod
    def password_strong(cls, v: str) -> str:
        return _check_password(v)


class MessageResponse(BaseModel):
    message: str


class RegisterResponse(BaseModel):
    message: str
    email: str


class VerifyOTPResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut
    message: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: str


class CreateUserResponse(BaseModel):
    message: str
    user: UserOut
