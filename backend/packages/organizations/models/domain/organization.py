from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class Organization(BaseModel):
    id: int
    name: str
    slug: Optional[str] = None
    razorpay_customer_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OrganizationUpdateModel(BaseModel):
    """Model for updating an organization."""

    name: Optional[str] = None
    slug: Optional[str] = None
    razorpay_customer_id: Optional[str] = None
