"""
api/routes/v1/auth.py -- Authentication REST endpoints.

Routes:
  POST  /api/v1/users/signup                 -- create account; sets jwt cookie; 201
  POST  /api/v1/users/login                  -- password login; sets jwt cookie
  GET|POST /api/v1/users/logout              -- overwrites jwt cookie (10s expiry)
  POST  /api/v1/users/forgot-password        -- emails a reset link
  PATCH /api/v1/users/reset-password/{token} -- consume reset token; logs in
  PATCH /api/v1/users/update-password        -- change password (requires auth)
  GET   /api/v1/users/me                     -- current user (requires auth)
  GET   /api/v1/users                        -- list accounts (admin only)

Security:
  Login and forgot-password are rate-limited per client IP.
  Login returns one generic error for unknown email and wrong password.
  Token responses carry Cache-Control: no-store.
  The forgot-password response echoes the plaintext reset token unless
  EXPOSE_RESET_TOKEN=false -- the token is a bearer credential for the
  account, so production deployments should turn that off.

Handlers are plain `def`: the user store is synchronous, so FastAPI runs them
in its worker thread pool rather than blocking the event loop.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import LOGIN_RATE_LIMIT, limiter
from api.models import (
    ForgotPasswordRequest,
    ForgotPasswordResponse,
    LoginRequest,
    MeResponse,
    ResetPasswordRequest,
    StatusResponse,
    TokenResponse,
    UpdatePasswordRequest,
    UserListResponse,
)
from auth.dependencies import get_auth_service, protect, restrict_to
from auth.models import Role, User
from auth.service import AuthService
from auth.tokens import set_auth_cookie, set_logout_cookie

# Auth policy:
# - signup, login, logout, forgot-password, reset-password: public
# - update-password, me:                                     protect
# - GET /users:                                               protect + restrict_to(admin)
router = APIRouter()


# ---------------------------------------------------------------------------
# Token issuance helper
# ---------------------------------------------------------------------------


def attach_token(service: AuthService, user: User, status_code: int) -> JSONResponse:
    """Issue a session token for user and build the success response.

    The token is set as an httpOnly "jwt" cookie and echoed in the body as
    {status, token, data: {user}}. user.to_public() never includes the
    password, and the stored record is not modified.
    """
    token = service.issue_token(user)
    resp = JSONResponse(
        status_code=status_code,
        content={"status": "success", "token": token, "data": {"user": user.to_public()}},
    )
    set_auth_cookie(resp, token, service.settings)
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/users/signup", response_model=TokenResponse, status_code=201)
def signup(
    payload: Any = Body(default=None),
    service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """Create an account and log it in.

    The raw body is validated by the service before anything is stored, so
    malformed input answers 400 with a single readable message.
    """
    user = service.signup(payload)
    return attach_token(service, user, 201)


@limiter.limit(LOGIN_RATE_LIMIT)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/users/login", response_model=TokenResponse)
def login(
    request: Request,
    body: LoginRequest,
    service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """Authenticate with email and password; set the jwt cookie."""
    user = service.login(body.email, body.password)
    return attach_token(service, user, 200)


@router.api_route("/users/logout", methods=["GET", "POST"], response_model=StatusResponse)
def logout(service: AuthService = Depends(get_auth_service)) -> JSONResponse:
    """Replace the session cookie with a short-lived dummy.

    No server-side revocation: a copied token stays valid until it expires.
    """
    resp = JSONResponse(content={"status": "success"})
    set_logout_cookie(resp, service.settings)
    return resp


@limiter.limit(LOGIN_RATE_LIMIT)
@router.post("/users/forgot-password", response_model=ForgotPasswordResponse)
def forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """Email a password reset link built from this request's origin."""
    origin = str(request.base_url).rstrip("/")
    reset_token = service.forgot_password(body.email, origin)

    content: dict = {"status": "success", "message": "Token sent to email!"}
    if service.settings.expose_reset_token:
        content["resetToken"] = reset_token
    resp = JSONResponse(content=content)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.patch("/users/reset-password/{token}", response_model=TokenResponse)
def reset_password(
    token: str,
    body: ResetPasswordRequest,
    service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """Set a new password with a reset token and log the user in."""
    user = service.reset_password(token, body.password, body.password_confirm)
    return attach_token(service, user, 200)


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.patch("/users/update-password", response_model=TokenResponse)
def update_password(
    body: UpdatePasswordRequest,
    current_user: User = Depends(protect),
    service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """Change the password and re-issue the token (the old one is now stale)."""
    user = service.update_password(current_user, body.password_current, body.password, body.password_confirm)
    return attach_token(service, user, 200)


@router.get("/users/me", response_model=MeResponse)
def me(current_user: User = Depends(protect)) -> dict:
    """Return the currently authenticated user."""
    return {"status": "success", "data": {"user": current_user.to_public()}}


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


@router.get("/users", response_model=UserListResponse)
def list_users(
    current_user: User = Depends(restrict_to(Role.admin)),
    service: AuthService = Depends(get_auth_service),
) -> dict:
    """List all accounts. Admin only."""
    users = service.store.list_users()
    return {"status": "success", "results": len(users), "data": {"users": [u.to_public() for u in users]}}
