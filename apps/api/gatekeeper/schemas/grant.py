"""Grant (method + path permission) schemas."""

from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, BeforeValidator, Field, model_validator


def _upper(value: object) -> object:
    return value.strip().upper() if isinstance(value, str) else value


HttpMethod = Annotated[
    Literal["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS", "CONNECT", "TRACE"],
    BeforeValidator(_upper),
]


class Grant(BaseModel):
    id: str
    method: str
    path: str
    description: str | None = None
    created_at: datetime
    updated_at: datetime


class CreateGrantRequest(BaseModel):
    method: HttpMethod
    path: str = Field(min_length=1)
    description: str | None = None


class UpdateGrantRequest(BaseModel):
    method: HttpMethod | None = None
    path: str | None = None
    description: str | None = None

    @model_validator(mode="after")
    def _require_one_field(self) -> "UpdateGrantRequest":
        if self.method is None and self.path is None and self.description is None:
            raise ValueError("One of method, path or description is required")
        return self
