"""Envelopes returned by the profile endpoints."""
from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field

from src.domain.entities.profile import ProfileEntity


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class ProfileData(BaseModel):
    """The profile record as exposed over HTTP."""
    id: str = Field(..., description="Identifier of the profile", example="1")
    name: str = Field(..., description="Display name", example="John Doe")
    bio: str = Field(..., description="Short biography")
    email: str = Field(..., description="Contact email", example="john.doe@example.com")
    phone: str = Field(..., description="Contact phone number", example="+1 (555) 123-4567")
    location: str = Field(..., description="Where the user is based", example="San Francisco, CA")
    updated_at: str = Field(..., description="ISO timestamp of the last modification")

    @classmethod
    def from_entity(cls, entity: ProfileEntity) -> "ProfileData":
        return cls(**entity.to_dict())


class ProfileResponse(BaseModel):
    """Successful read or write of the profile."""
    success: bool = Field(True, description="Indicates the operation was successful")
    data: ProfileData = Field(..., description="Current profile record")
    message: str | None = Field(None, description="Optional success message")
    timestamp: str = Field(default_factory=_now_iso, description="ISO timestamp of the response")


class ProfileErrorResponse(BaseModel):
    """Failure envelope; internal details are never included."""
    success: bool = Field(False, description="Always false for errors")
    error: str = Field(..., description="Generic error message", example="Failed to fetch profile")
    errors: dict[str, str] | None = Field(
        None,
        description="Field-level validation messages, present for rejected updates",
        example={"bio": "Bio must be at least 10 characters"},
    )
    timestamp: str = Field(default_factory=_now_iso, description="ISO timestamp of the response")
