"""Authentication schemas."""

from datetime import datetime
import re
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field, model_validator

_PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&#])[A-Za-z\d@$!%*?&#]{6,12}$")


def _check_password(value: str) -> str:
    if not _PASSWORD_PATTERN.match(value):
        raise ValueError(
            "Password must have 6 to 12 characters and include an uppercase letter, "
            "a lowercase letter, a digit and one of @$!%*?&#"
        )
    return value


Password = Annotated[str, AfterValidator(_check_password)]


class AuthPrincipal(BaseModel):
    """Identity extracted from a verified session artifact."""

    id: str = Field(min_length=1)


class Authentication(BaseModel):
    """Public view of a principal; password hash and reset token never leave the store."""

    id: str
    login: str
    active: bool
    created_at: datetime
    updated_at: datetime


class ExternalAuthentication(BaseModel):
    authentication_id: str
    external_id: str
    email: str | None = None
    provider: str
    created_at: datetime
    updated_at: datetime


class RegisterRequest(BaseModel):
    login: str = Field(min_length=1)
    password: Password


class RegisterResponse(BaseModel):
    auth: Authentication


class LoginRequest(BaseModel):
    login: str = Field(min_length=1)
    password: str = Field(min_length=1)


class LoginResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token_or_session_id: str = Field(alias="tokenOrSessionId")


class ExternalLoginRequest(BaseModel):
    provider: str = Field(min_length=1)
    code: str = Field(min_length=1)


class ForgotPasswordRequest(BaseModel):
    login: EmailStr


class PasswordRequest(BaseModel):
    password: Password


class ChangePasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    old_password: Password = Field(alias="oldPassword")
    new_password: Password = Field(alias="newPassword")


class UpdateAuthenticationRequest(BaseModel):
    login: EmailStr | None = None
    password: Password | None = None

    @model_validator(mode="after")
    def _require_one_field(self) -> "UpdateAuthenticationRequest":
        if self.login is None and self.password is None:
            raise ValueError("Either login or password is required")
        return self
