"""
User schemas: public-safe views of a user record.
"""
from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime


class UserOut(BaseModel):
    """
    Public-safe user representation.
    hashed_password is never included; Pydantic only exposes fields declared here.
    """
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    role: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    is_verified: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
