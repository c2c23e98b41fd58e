"""
User Schemas.

Pydantic models for profile and user-management requests and responses.
"""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.enums import UserRole


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class UserRoleUpdate(BaseModel):
    """Schema for changing a user's role.

    ``department_id`` and ``specialization`` only apply when the new role is
    ``doctor``; they are ignored otherwise.
    """

    role: str = Field(
        ...,
        description="New role: admin, doctor, patient",
        examples=["doctor"],
    )
    department_id: int | None = Field(
        None,
        description="Department for the doctor profile",
    )
    specialization: str | None = Field(
        None,
        max_length=255,
        description="Doctor specialization",
        examples=["Cardiologist"],
    )

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: str) -> str:
        """Validate role is one of the allowed values."""
        allowed = [r.value for r in UserRole]
        if v not in allowed:
            raise ValueError(f"Role must be one of: {', '.join(allowed)}")
        return v

    @field_validator("department_id")
    @classmethod
    def validate_department_id(cls, v: int | None) -> int | None:
        """Convert 0 to None for department_id to prevent foreign key errors."""
        return None if v == 0 else v


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class ProfileResponse(BaseModel):
    """The authenticated caller."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: str = ""
    picture: str = ""
    role: str


class UserResponse(BaseModel):
    """Schema for user response."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="User ID")
    email: str = Field(..., description="Email address")
    name: str = Field("", description="Display name")
    picture: str = Field("", description="Avatar URL")
    role: str = Field(..., description="User role")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime | None = Field(None, description="Last update timestamp")


class UserListResponse(BaseModel):
    """Schema for paginated user list response."""

    success: bool = Field(default=True)
    users: list[UserResponse] = Field(..., description="List of users")
    total: int = Field(..., description="Total count")
    skip: int = Field(..., description="Offset")
    limit: int = Field(..., description="Page size")


class UserUpdateResponse(BaseModel):
    """Schema for user update response."""

    success: bool = Field(default=True)
    message: str = Field(default="User role updated")
    user: UserResponse = Field(..., description="Updated user")
