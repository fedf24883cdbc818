"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, almost zero logic). The store and
the service do the work; the one helper here is to_public(), which produces
the outward representation and is the only place that decides which fields
leave the process.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    """Closed set of account roles. restrict_to() only accepts these."""

    user = "user"
    seller = "seller"
    admin = "admin"


@dataclass
class Address:
    country: str
    city: str
    street: str
    zip: str


@dataclass
class User:
    """Represents a shop account.

    hashed_password is None unless the record was loaded with
    include_password=True -- normal reads never carry the hash.

    password_reset_token holds the SHA-256 hex digest of the token that was
    emailed; the plaintext is never stored. password_reset_expires is always
    cleared together with it.

    password_version starts at 0 and is bumped by every password change.
    Session tokens carry the version they were issued under.
    """

    email: str
    name: str
    role: Role = Role.user
    phone: str = ""
    photo: str = "default.jpg"
    address: Address | None = None
    id: int | None = None
    hashed_password: str | None = None
    password_changed_at: datetime | None = None
    password_version: int = 0
    password_reset_token: str | None = None
    password_reset_expires: datetime | None = None
    created_at: datetime | None = None

    def changed_password_after(self, issued_at: int, password_version: int) -> bool:
        """Return True if the password changed after a token was issued.

        A token is stale when its password version no longer matches, or when
        its iat (epoch seconds) predates password_changed_at.
        """
        if password_version != self.password_version:
            return True
        if self.password_changed_at is None:
            return False
        return issued_at < int(self.password_changed_at.timestamp())

    def to_public(self) -> dict:
        """Return the JSON-safe outward representation (no password, no reset fields)."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "phone": self.phone,
            "photo": self.photo,
            "address": (
                {
                    "country": self.address.country,
                    "city": self.address.city,
                    "street": self.address.street,
                    "zip": self.address.zip,
                }
                if self.address is not None
                else None
            ),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
