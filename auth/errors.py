"""
auth/errors.py -- Domain error taxonomy for the auth service.

Every error carries a human-readable message and the HTTP status code the
boundary should answer with. api/main.py renders them all through one
exception handler as {"status": "fail" | "error", "message": ...}.

  ValidationError  -- malformed input (400)
  AuthError        -- bad/missing/expired credentials (401) or role failure (403)
  NotFoundError    -- unknown resource (404)
  DependencyError  -- email delivery or store failure (500)

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations


class AppError(Exception):
    """Base class for errors that are safe to show to the client verbatim."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    @property
    def status(self) -> str:
        """'fail' for client errors, 'error' for server errors."""
        return "fail" if 400 <= self.status_code < 500 else "error"

    def to_dict(self) -> dict:
        return {"status": self.status, "message": self.message}


class ValidationError(AppError):
    status_code = 400


class AuthError(AppError):
    status_code = 401


class NotFoundError(AppError):
    status_code = 404


class DependencyError(AppError):
    status_code = 500
