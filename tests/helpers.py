"""tests/helpers.py -- Plain helpers shared by fixtures and test modules."""

from __future__ import annotations

import uuid


class RecordingNotifier:
    """Notifier double. Appends (to, subject, body) to .sent; raises if .fail is set."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []
        self.fail = False

    def send(self, to: str, subject: str, body: str) -> None:
        if self.fail:
            raise ConnectionRefusedError("SMTP relay unavailable")
        self.sent.append((to, subject, body))


def make_signup_body(email: str | None = None, **overrides) -> dict:
    """Return a valid signup body. Each call gets a fresh email unless one is given."""
    body = {
        "name": "Alice Shopper",
        "email": email or f"user-{uuid.uuid4().hex[:12]}@example.com",
        "password": "secret123",
        "passwordConfirm": "secret123",
        "role": "user",
        "phone": "1",
        "address": {"country": "X", "city": "Y", "street": "Z", "zip": "0"},
    }
    body.update(overrides)
    return body
