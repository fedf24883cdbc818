"""
auth/service.py -- AuthService: signup, login, route protection and the
password lifecycle.

AuthService is constructed once at startup with its collaborators:
  store     -- UserStore (persistence, password hashing, narrow updates)
  notifier  -- anything with send(to, subject, body) (reset-link email)
  settings  -- core.config.Settings (secret, lifetimes, environment flag)

Every operation either returns a domain object or raises an AppError subclass
from auth/errors.py. The HTTP layer (api/routes/v1/auth.py) owns responses and
cookies; this module never touches a Request or Response.

Security:
  Login returns the same error for an unknown email and a wrong password, and
  runs bcrypt in both cases so response time does not leak account existence.

  Route protection rejects tokens issued before the last password change
  (freshness check). Tokens carry the password version they were issued
  under, so the check does not depend on clock resolution.

  Reset tokens are stored as SHA-256 digests only. A wrong token and an expired
  token produce the same error.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import IntegrityError

from auth.errors import AuthError, DependencyError, NotFoundError, ValidationError
from auth.models import Address, Role, User
from auth.tokens import (
    burn_password_check,
    create_access_token,
    decode_access_token,
    generate_reset_token,
    hash_reset_token,
    verify_password,
)
from auth.validation import validate_signup

if TYPE_CHECKING:
    from auth.notifier import Notifier
    from auth.store import UserStore
    from core.config import Settings

logger = logging.getLogger("ecomauth.auth")

RESET_PATH = "/api/v1/users/reset-password"


def require_role(user: User, allowed_roles: Iterable[Role]) -> User:
    """Return the user if their role is allowed, else raise AuthError (403)."""
    if user.role not in set(allowed_roles):
        raise AuthError("You do not have permission to perform this action", 403)
    return user


class AuthService:
    def __init__(self, store: UserStore, notifier: Notifier, settings: Settings) -> None:
        self.store = store
        self.notifier = notifier
        self.settings = settings

    # ------------------------------------------------------------------
    # Token issuance
    # ------------------------------------------------------------------

    def issue_token(self, user: User) -> str:
        """Sign a session token bound to the user's current password version."""
        return create_access_token(
            user.id,
            self.settings.secret_key,
            self.settings.jwt_expire_seconds,
            password_version=user.password_version,
        )

    # ------------------------------------------------------------------
    # Signup / login
    # ------------------------------------------------------------------

    def signup(self, payload: Any) -> User:
        """Validate the raw body, create the account and return it.

        Validation runs before the store is touched. A duplicate email surfaces
        as a ValidationError (400) rather than a server error.
        """
        data = validate_signup(payload)
        new_user = User(
            name=data.name,
            email=data.email,
            role=data.role,
            phone=data.phone,
            photo=data.photo or "default.jpg",
            address=Address(
                country=data.address.country,
                city=data.address.city,
                street=data.address.street,
                zip=data.address.zip,
            ),
        )
        try:
            user_id = self.store.create_user(new_user, data.password)
        except IntegrityError as exc:
            raise ValidationError("Email already in use. Please use another email!") from exc

        logger.info("New account user_id=%s role=%s", user_id, data.role.value)
        return self.store.get_by_id(user_id)

    def login(self, email: str | None, password: str | None) -> User:
        """Authenticate with email and password.

        Unknown email and wrong password raise the identical AuthError (401).
        bcrypt runs in both branches (against a dummy hash for unknown emails).
        """
        if not email or not password:
            raise AuthError("Please provide email and password!", 400)

        user = self.store.get_by_email(email, include_password=True)
        if user is None or user.hashed_password is None:
            burn_password_check(password)
            logger.info("Failed login (unknown account)")
            raise AuthError("Incorrect email or password")
        if not verify_password(password, user.hashed_password):
            logger.info("Failed login user_id=%s", user.id)
            raise AuthError("Incorrect email or password")

        user.hashed_password = None
        return user

    # ------------------------------------------------------------------
    # Route protection
    # ------------------------------------------------------------------

    def protect(self, token: str | None) -> User:
        """Resolve a session token to its user.

        jose.JWTError from signature or expiry verification propagates
        unchanged; api/main.py renders it as a 401.
        """
        if not token:
            raise AuthError("You are not logged in! Please log in to get access.")

        claims = decode_access_token(token, self.settings.secret_key)

        user = self.store.get_by_id(claims["id"])
        if user is None:
            raise AuthError("The user belonging to this token no longer exists.")

        if user.changed_password_after(int(claims["iat"]), claims["pv"]):
            logger.info("Rejected stale token for user_id=%s", user.id)
            raise AuthError("User recently changed password! Please log in again.")

        return user

    # ------------------------------------------------------------------
    # Password lifecycle
    # ------------------------------------------------------------------

    def forgot_password(self, email: str | None, origin: str) -> str:
        """Store a fresh reset-token digest and email the plaintext link.

        Returns the plaintext token. If delivery fails the stored digest is
        cleared again and DependencyError (500) is raised.
        """
        user = self.store.get_by_email(email) if email else None
        if user is None:
            raise NotFoundError("There is no user with that email address.")

        reset_token = generate_reset_token()
        expires_at = datetime.now(timezone.utc) + timedelta(minutes=self.settings.password_reset_expire_minutes)
        self.store.set_reset_token(user.id, hash_reset_token(reset_token), expires_at)

        reset_url = f"{origin.rstrip('/')}{RESET_PATH}/{reset_token}"
        message = (
            "Forgot your password? Submit a PATCH request with your new password and "
            f"passwordConfirm to: {reset_url}\n"
            "If you didn't forget your password, please ignore this email!"
        )
        subject = f"Your password reset token (valid for {self.settings.password_reset_expire_minutes} min)"

        try:
            self.notifier.send(user.email, subject, message)
        except Exception as exc:
            logger.warning("Reset email to user_id=%s failed: %s", user.id, exc)
            self.store.clear_reset_token(user.id)
            raise DependencyError("There was an error sending the email. Try again later!") from exc

        logger.info("Reset token issued for user_id=%s", user.id)
        return reset_token

    def reset_password(self, token: str, password: str | None, password_confirm: str | None) -> User:
        """Consume a reset token and set a new password.

        set_password() clears both reset fields in the same update, so the
        token works exactly once.
        """
        user = self.store.get_by_reset_token(hash_reset_token(token))
        if user is None:
            raise AuthError("Token is invalid or has expired", 400)

        self.store.set_password(user.id, password, password_confirm)
        logger.info("Password reset for user_id=%s", user.id)
        return self.store.get_by_id(user.id)

    def update_password(
        self,
        current_user: User,
        password_current: str | None,
        password: str | None,
        password_confirm: str | None,
    ) -> User:
        """Change the password of an authenticated user after re-checking the current one."""
        user = self.store.get_by_id(current_user.id, include_password=True)
        if user is None:
            raise AuthError("The user belonging to this token no longer exists.")

        if not password_current or not verify_password(password_current, user.hashed_password or ""):
            raise AuthError("Your current password is wrong.", 400)

        self.store.set_password(user.id, password, password_confirm)
        logger.info("Password updated for user_id=%s", user.id)
        return self.store.get_by_id(user.id)
