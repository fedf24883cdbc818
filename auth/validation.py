"""
auth/validation.py -- Input schemas checked before the store is touched.

SignupInput is a Pydantic v2 model used purely as a validator: the service
calls validate_signup() on the raw JSON body and converts the first failure
into a ValidationError (HTTP 400). Nothing is written to the store unless
validation passes.

passwordConfirm is accepted here and nowhere else -- it never reaches the
store.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from auth.errors import ValidationError
from auth.models import Role

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128


class AddressInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    country: str = Field(min_length=1, max_length=100)
    city: str = Field(min_length=1, max_length=100)
    street: str = Field(min_length=1, max_length=255)
    zip: str = Field(min_length=1, max_length=20)


class SignupInput(BaseModel):
    # No blanket str_strip_whitespace: passwords are taken exactly as typed.
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = Field(min_length=1, max_length=100)
    email: str = Field(pattern=EMAIL_PATTERN, max_length=255)
    password: str = Field(min_length=PASSWORD_MIN_LENGTH, max_length=PASSWORD_MAX_LENGTH)
    password_confirm: str = Field(alias="passwordConfirm")
    role: Role = Role.user
    phone: str = Field(min_length=1, max_length=30)
    photo: Optional[str] = None
    address: AddressInput

    @field_validator("name", "phone", "photo", mode="before")
    @classmethod
    def strip_text(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value: Any) -> Any:
        """Lower-case emails before the pattern check so lookups are case-insensitive."""
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @model_validator(mode="after")
    def passwords_match(self) -> "SignupInput":
        if self.password != self.password_confirm:
            raise ValueError("Passwords are not the same!")
        return self


def _first_error_message(exc: PydanticValidationError) -> str:
    """Turn the first pydantic error into a one-line message such as 'email: ...'."""
    err = exc.errors()[0]
    msg = err.get("msg", "Invalid input")
    # model_validator errors arrive as "Value error, <message>"
    if msg.startswith("Value error, "):
        msg = msg[len("Value error, ") :]
    loc = ".".join(str(part) for part in err.get("loc", ()) if part != "__root__")
    return f"{loc}: {msg}" if loc else msg


def validate_signup(payload: Any) -> SignupInput:
    """Validate a raw signup body. Raises ValidationError (400) on the first problem."""
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object.")
    try:
        return SignupInput.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError(_first_error_message(exc)) from exc


def check_new_password(password: str | None, password_confirm: str | None) -> None:
    """Minimal invariants for any password mutation: present, long enough, confirmed."""
    if not password or len(password) < PASSWORD_MIN_LENGTH:
        raise ValidationError(f"password: must be at least {PASSWORD_MIN_LENGTH} characters")
    if len(password) > PASSWORD_MAX_LENGTH:
        raise ValidationError(f"password: must be at most {PASSWORD_MAX_LENGTH} characters")
    if password != password_confirm:
        raise ValidationError("Passwords are not the same!")
