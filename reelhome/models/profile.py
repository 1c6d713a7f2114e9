"""Profile model - display identity attached to an auth user."""

from typing import Optional
from pydantic import BaseModel, Field


class Profile(BaseModel):
    """Profile row keyed by the auth user id."""
    id: str = Field(..., description="Auth user ID (uuid)")
    display_name: Optional[str] = Field(None, description="Display name")
    avatar_url: Optional[str] = Field(None, description="Avatar image URL")
    phone: Optional[str] = Field(None, description="Phone number")
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class ProfileUpdate(BaseModel):
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    phone: Optional[str] = None
