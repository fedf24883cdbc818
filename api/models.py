"""
API request and response models for the auth REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py, which own the
internal domain representation. Route handlers map between the two.

Credential fields on the request models are Optional on purpose: a missing
email or password is a domain error with its own message (400), not a generic
schema failure. Signup is validated in auth/validation.py, so it has no
request model here.

Password fields are never stripped of whitespace; the store looks emails up
in normalized form, so login does not strip either.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/users/login."""

    email: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = Field(default=None, max_length=128)


class ForgotPasswordRequest(BaseModel):
    """Request body for POST /api/v1/users/forgot-password."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: Optional[str] = Field(default=None, max_length=255)


class ResetPasswordRequest(BaseModel):
    """Request body for PATCH /api/v1/users/reset-password/{token}."""

    model_config = ConfigDict(populate_by_name=True)

    password: Optional[str] = None
    password_confirm: Optional[str] = Field(default=None, alias="passwordConfirm")


class UpdatePasswordRequest(BaseModel):
    """Request body for PATCH /api/v1/users/update-password."""

    model_config = ConfigDict(populate_by_name=True)

    password_current: Optional[str] = Field(default=None, alias="passwordCurrent")
    password: Optional[str] = None
    password_confirm: Optional[str] = Field(default=None, alias="passwordConfirm")


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class AddressOut(BaseModel):
    country: str
    city: str
    street: str
    zip: str


class UserOut(BaseModel):
    """Outward user representation. Never carries password or reset fields."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: str
    role: str
    phone: str
    photo: str
    address: Optional[AddressOut] = None
    createdAt: Optional[str] = None


class UserData(BaseModel):
    user: UserOut


class UsersData(BaseModel):
    users: list[UserOut]


class TokenResponse(BaseModel):
    """Success envelope for signup, login, reset-password and update-password."""

    status: str = "success"
    token: str
    data: UserData


class MeResponse(BaseModel):
    status: str = "success"
    data: UserData


class UserListResponse(BaseModel):
    status: str = "success"
    results: int
    data: UsersData


class StatusResponse(BaseModel):
    status: str = "success"


class ForgotPasswordResponse(BaseModel):
    status: str = "success"
    message: str
    # Present unless EXPOSE_RESET_TOKEN=false.
    resetToken: Optional[str] = None


class ErrorResponse(BaseModel):
    """Error envelope returned on every 4xx/5xx response.

    status is "fail" for client errors and "error" for server errors.
    """

    model_config = ConfigDict(frozen=True)

    status: str
    message: str


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
    database: str = "ok"
