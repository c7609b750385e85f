"""Application exception types."""

from typing import Any

from gatekeeper.schemas.error import ErrorResponse


class ApiError(Exception):
    """Typed HTTP error whose payload is rendered verbatim by the app handler."""

    def __init__(
        self,
        status_code: int,
        message: str,
        *,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.status_code = status_code
        self.payload = ErrorResponse(message=message, code=code, details=details)
        super().__init__(message)


def not_found(message: str) -> ApiError:
    return ApiError(status_code=404, message=message, code="RESOURCE_NOT_FOUND")


def conflict(message: str) -> ApiError:
    return ApiError(status_code=409, message=message, code="CONFLICT")


def bad_request(message: str) -> ApiError:
    return ApiError(status_code=400, message=message, code="BAD_REQUEST")


__all__ = ["ApiError", "bad_request", "conflict", "not_found"]
