"""API error response schemas."""

from typing import Any

from pydantic import BaseModel

FORBIDDEN_MESSAGE = "Forbidden Access"


class ErrorResponse(BaseModel):
    message: str
    code: str | None = None
    details: dict[str, Any] | None = None


class ForbiddenResponse(BaseModel):
    """Uniform body of every authorization denial, whatever the cause."""

    message: str = FORBIDDEN_MESSAGE


class MessageResponse(BaseModel):
    message: str
