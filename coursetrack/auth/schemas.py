"""Pydantic schemas for users and the authenticated caller."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from coursetrack.auth.permissions import UserRole


class AuthenticatedCaller(BaseModel):
    """Identity supplied by the bearer token.

    Services receive this value explicitly; it is never read from ambient
    request state.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID
    email: str
    role: UserRole

    @property
    def is_teacher(self) -> bool:
        return self.role == UserRole.TEACHER

    @property
    def is_student(self) -> bool:
        return self.role == UserRole.STUDENT


class CreateUserRequest(BaseModel):
    """User creation request."""

    name: str = Field(..., min_length=1, max_length=100, description="Full name")
    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., min_length=8, description="Password")
    role: UserRole = Field(UserRole.STUDENT, description="student or teacher")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            msg = "Name is required"
            raise ValueError(msg)
        return v


class UserResponse(BaseModel):
    """User response (public profile)."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    role: str
    is_verified: bool
    created_at: datetime

    @classmethod
    def from_user(cls, user: "User") -> "UserResponse":  # noqa: F821
        """Create response from User model."""
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            is_verified=user.is_verified,
            created_at=user.created_at,
        )
