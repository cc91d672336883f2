"""User schemas (DTOs)."""

from datetime import date, datetime

from pydantic import BaseModel, Field

from .models import UserRole


# Request schemas
class AssignRoleRequest(BaseModel):
    """Change a user's role (admin only)."""

    role: UserRole


# Response schemas
class UserResponse(BaseModel):
    """User response."""

    id: int
    email: str
    full_name: str
    birth_date: date
    role: UserRole
    created_at: datetime
    last_login_at: datetime | None = None

    model_config = {"from_attributes": True}


class UserListResponse(BaseModel):
    """User list response."""

    users: list[UserResponse]
    total: int = Field(..., ge=0)
