from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr


class User(BaseModel):
    id: int
    email: EmailStr
    name: Optional[str] = None
    email_verified: bool = False
    razorpay_customer_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserCreateModel(BaseModel):
    """Model for creating a new user."""

    email: EmailStr
    name: Optional[str] = None
    email_verified: bool = False


class UserUpdateModel(BaseModel):
    """Model for updating a user."""

    name: Optional[str] = None
    email_verified: Optional[bool] = None
    razorpay_customer_id: Optional[str] = None
