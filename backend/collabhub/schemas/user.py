"""User schemas."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field


class UserSummary(BaseModel):
    """Public user card used in contact, search and member listings."""

    id: int
    name: str
    login: str
    avatar: str | None = None
    email: str | None = None

    class Config:
        from_attributes = True


class UserResponse(BaseModel):
    """Full user information for the account owner."""

    id: int
    login: str
    name: str
    email: str | None
    role: str
    avatar: str | None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class UserProfileUpdate(BaseModel):
    """Profile update request. Identity and role fields are not accepted."""

    name: str | None = Field(None, min_length=1, max_length=255)
    email: EmailStr | None = None
    avatar: str | None = Field(None, max_length=500)
