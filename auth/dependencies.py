"""
auth/dependencies.py -- FastAPI Depends() gates for route protection.

Gates raise on failure and return the resolved user on success; the router
composes them with Depends() and FastAPI stops at the first one that raises.

  protect          -- resolves the session token to a User and attaches it
                      to request.state.user. Writes nothing on success.
  restrict_to(...) -- gate factory; 403 unless the protected user's role is
                      in the allowed set. No I/O.

Token sources, in priority order:
  1. Authorization: Bearer <token> header -- API clients.
  2. "jwt" cookie -- set by signup/login for browser clients.

Layer rule: no imports from api/. This module may import from fastapi
because it is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Depends, Request

from auth.models import Role, User
from auth.service import AuthService, require_role
from auth.tokens import COOKIE_NAME, LOGGED_OUT_VALUE


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def extract_token(request: Request) -> str | None:
    """Return the bearer token from the header, else the session cookie, else None."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
        if token:
            return token

    token = request.cookies.get(COOKIE_NAME)
    if token and token != LOGGED_OUT_VALUE:
        return token
    return None


def protect(request: Request) -> User:
    """Require a valid, fresh session token.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: User = Depends(protect)): ...
    """
    service = get_auth_service(request)
    user = service.protect(extract_token(request))
    request.state.user = user
    return user


def restrict_to(*roles: Role) -> Callable[..., User]:
    """Build a gate that only lets the given roles through.

    Use as a FastAPI dependency:
        @router.get("/admin-only")
        def route(user: User = Depends(restrict_to(Role.admin))): ...
    """
    allowed = frozenset(Role(r) for r in roles)

    def _gate(user: User = Depends(protect)) -> User:
        return require_role(user, allowed)

    return _gate
