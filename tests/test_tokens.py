"""Unit tests for auth/tokens.py -- password hashing, JWTs, reset tokens, cookies.

Covers:
- bcrypt hash/verify, including a malformed stored hash
- JWT round trip carries the user id, password version and iat
- wrong secret, tampering, expiry and missing claims all raise JWTError
- reset tokens: random plaintext, deterministic SHA-256 digest
- cookie helpers: httpOnly, secure only in production, 10s logout cookie
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.responses import JSONResponse
from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError

from auth.tokens import (
    COOKIE_NAME,
    create_access_token,
    decode_access_token,
    generate_reset_token,
    hash_password,
    hash_reset_token,
    set_auth_cookie,
    set_logout_cookie,
    verify_password,
)
from core.config import Settings

SECRET = "s" * 40


class TestPasswordHashing:
    def test_verify_correct_password(self) -> None:
        hashed = hash_password("secret123")
        assert hashed != "secret123"
        assert verify_password("secret123", hashed)

    def test_verify_wrong_password(self) -> None:
        assert not verify_password("wrong-pass", hash_password("secret123"))

    def test_malformed_hash_is_a_mismatch(self) -> None:
        assert not verify_password("secret123", "not-a-bcrypt-hash")

    def test_hashes_are_salted(self) -> None:
        assert hash_password("secret123") != hash_password("secret123")


class TestAccessToken:
    def test_round_trip_carries_id(self) -> None:
        token = create_access_token(42, SECRET, 3600)
        claims = decode_access_token(token, SECRET)
        assert claims["id"] == 42
        assert isinstance(claims["iat"], int)
        assert claims["exp"] - claims["iat"] == 3600
        assert claims["pv"] == 0

    def test_carries_password_version(self) -> None:
        claims = decode_access_token(create_access_token(1, SECRET, 3600, password_version=3), SECRET)
        assert claims["pv"] == 3

    def test_missing_password_version_rejected(self) -> None:
        now = datetime.now(timezone.utc)
        token = jwt.encode({"id": 1, "iat": now, "exp": now + timedelta(hours=1)}, SECRET, algorithm="HS256")
        with pytest.raises(JWTError):
            decode_access_token(token, SECRET)

    def test_explicit_issued_at(self) -> None:
        issued = datetime.now(timezone.utc) - timedelta(minutes=5)
        claims = decode_access_token(create_access_token(1, SECRET, 3600, issued_at=issued), SECRET)
        assert claims["iat"] == int(issued.timestamp())

    def test_wrong_secret_rejected(self) -> None:
        token = create_access_token(1, SECRET, 3600)
        with pytest.raises(JWTError):
            decode_access_token(token, "x" * 40)

    def test_tampered_token_rejected(self) -> None:
        token = create_access_token(1, SECRET, 3600)
        header, payload, signature = token.split(".")
        with pytest.raises(JWTError):
            decode_access_token(f"{header}.{payload}.{signature[::-1]}", SECRET)

    def test_expired_token_raises_expired_signature(self) -> None:
        issued = datetime.now(timezone.utc) - timedelta(hours=2)
        token = create_access_token(1, SECRET, 3600, issued_at=issued)
        with pytest.raises(ExpiredSignatureError):
            decode_access_token(token, SECRET)

    def test_missing_id_claim_rejected(self) -> None:
        now = datetime.now(timezone.utc)
        token = jwt.encode({"iat": now, "exp": now + timedelta(hours=1)}, SECRET, algorithm="HS256")
        with pytest.raises(JWTError):
            decode_access_token(token, SECRET)


class TestResetToken:
    def test_plaintext_is_random_hex(self) -> None:
        a, b = generate_reset_token(), generate_reset_token()
        assert a != b
        assert len(a) == 64
        int(a, 16)

    def test_digest_is_deterministic_and_differs_from_plaintext(self) -> None:
        plain = generate_reset_token()
        assert hash_reset_token(plain) == hash_reset_token(plain)
        assert hash_reset_token(plain) != plain
        assert len(hash_reset_token(plain)) == 64


class TestCookies:
    def _set_cookie_header(self, resp: JSONResponse) -> str:
        return resp.headers["set-cookie"].lower()

    def test_auth_cookie_is_http_only_and_not_secure_in_development(self) -> None:
        settings = Settings(secret_key=SECRET, environment="development")
        resp = JSONResponse({})
        set_auth_cookie(resp, "tok", settings)
        header = self._set_cookie_header(resp)
        assert header.startswith(f"{COOKIE_NAME}=tok")
        assert "httponly" in header
        assert "secure" not in header
        assert f"max-age={settings.jwt_cookie_max_age}" in header

    def test_auth_cookie_is_secure_in_production(self) -> None:
        settings = Settings(secret_key=SECRET, environment="production")
        resp = JSONResponse({})
        set_auth_cookie(resp, "tok", settings)
        assert "secure" in self._set_cookie_header(resp)

    def test_logout_cookie_expires_in_ten_seconds(self) -> None:
        settings = Settings(secret_key=SECRET)
        resp = JSONResponse({})
        set_logout_cookie(resp, settings)
        header = self._set_cookie_header(resp)
        assert header.startswith(f"{COOKIE_NAME}=loggedout")
        assert "max-age=10" in header
