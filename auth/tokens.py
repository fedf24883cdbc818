"""
auth/tokens.py -- JWT, password hashing, reset-token and cookie utilities.

Security design decisions:
  JWT: python-jose with HS256. Tokens carry the user id, the password
       version ("pv") and iat/exp. A password change bumps the stored
       version, which makes every earlier token stale regardless of timing.
       decode_access_token() lets JWTError propagate -- the boundary handler in
       api/main.py turns it into a 401 with a message that distinguishes an
       expired token from a forged one.

  Passwords: bcrypt, used directly. bcrypt.checkpw is a constant-time
       comparison. The _DUMMY_HASH constant lets the login path run bcrypt even
       for unknown emails so response time does not reveal which accounts exist.

  Reset tokens: secrets.token_hex(32) gives 256 bits of entropy. Only the
       SHA-256 digest is stored; the hash is deterministic so the store can look
       a user up by it. bcrypt's slowness buys nothing for a value that strong.

  Secrets and lifetimes are passed in explicitly (from the injected Settings)
  rather than read from module-level config.

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import jwt
from jose.exceptions import JWTClaimsError

if TYPE_CHECKING:
    from core.config import Settings

_ALGORITHM = "HS256"

COOKIE_NAME = "jwt"
LOGGED_OUT_VALUE = "loggedout"
LOGOUT_COOKIE_SECONDS = 10

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt truncates input past 72 bytes; the signup schema caps passwords at
    128 characters, so this only matters for exotic multi-byte input.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash.
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("ecomauth_timing_dummy")


def burn_password_check(plain: str) -> None:
    """Run a bcrypt comparison whose result is discarded (timing equalization)."""
    verify_password(plain, _DUMMY_HASH)


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def create_access_token(
    user_id: int,
    secret_key: str,
    expire_seconds: int,
    issued_at: datetime | None = None,
    password_version: int = 0,
) -> str:
    """Encode a signed JWT carrying the user id and password version.

    Args:
        user_id:        Numeric user ID stored in the DB.
        secret_key:     HS256 signing key.
        expire_seconds: Token lifetime, counted from issued_at.
        issued_at:      Defaults to now. Only tests pass an explicit value.
        password_version: User.password_version at issue time (claim "pv").
    """
    iat = issued_at or datetime.now(timezone.utc)
    payload = {
        "id": user_id,
        "pv": password_version,
        "iat": iat,
        "exp": iat + timedelta(seconds=expire_seconds),
    }
    return jwt.encode(payload, secret_key, algorithm=_ALGORITHM)


def decode_access_token(token: str, secret_key: str) -> dict:
    """Verify signature and expiry and return the claims.

    Raises jose.JWTError (ExpiredSignatureError for expired tokens). A token
    with a valid signature but no id, iat or pv claim raises JWTClaimsError.
    """
    payload = jwt.decode(token, secret_key, algorithms=[_ALGORITHM])
    if any(claim not in payload for claim in ("id", "iat", "pv")):
        raise JWTClaimsError("Token is missing required claims.")
    return payload


# ---------------------------------------------------------------------------
# Password reset tokens
# ---------------------------------------------------------------------------


def generate_reset_token() -> str:
    """Return a new plaintext reset token (64 hex chars)."""
    return secrets.token_hex(32)


def hash_reset_token(plain: str) -> str:
    """Return the SHA-256 hex digest stored in place of the plaintext token."""
    return hashlib.sha256(plain.encode("utf-8")).hexdigest()


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_auth_cookie(response, token: str, settings: Settings) -> None:
    """Write the session token as an httpOnly cookie on the response.

    httponly=True: JS cannot read the cookie (XSS mitigation).
    samesite="lax": not sent on cross-site POSTs.
    secure: HTTPS-only in the production environment.
    max_age: JWT_COOKIE_EXPIRE_DAYS.
    """
    response.set_cookie(
        COOKIE_NAME,
        value=token,
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
        max_age=settings.jwt_cookie_max_age,
    )


def set_logout_cookie(response, settings: Settings) -> None:
    """Overwrite the session cookie with a dummy value that expires in 10 seconds."""
    response.set_cookie(
        COOKIE_NAME,
        value=LOGGED_OUT_VALUE,
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
        max_age=LOGOUT_COOKIE_SECONDS,
    )
