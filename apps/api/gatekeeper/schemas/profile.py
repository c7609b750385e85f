"""Profile (role) schemas."""

from datetime import datetime

from pydantic import BaseModel, Field, model_validator


class Profile(BaseModel):
    id: str
    name: str
    description: str | None = None
    created_at: datetime
    updated_at: datetime


class CreateProfileRequest(BaseModel):
    name: str = Field(min_length=1)
    description: str | None = None


class UpdateProfileRequest(BaseModel):
    name: str | None = None
    description: str | None = None

    @model_validator(mode="after")
    def _require_one_field(self) -> "UpdateProfileRequest":
        if self.name is None and self.description is None:
            raise ValueError("Either name or description is required")
        return self
