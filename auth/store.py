"""
auth/store.py -- SQLAlchemy Core persistence layer for shop accounts.

Pattern: Repository + Data Mapper. UserStore is the repository; _row_to_user
is the mapper. Service and route code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  The password hash is only selected when a caller asks for it
  (include_password=True). Every other read maps hashed_password to None.

  There is no general "save" method. Password and reset-token changes go
  through narrow update operations, each a single UPDATE statement:
    set_password()       -- re-hash, bump password_version, clear reset fields
    set_reset_token()    -- store the reset-token digest and its expiry
    clear_reset_token()  -- null both reset fields together

Timestamps are stored as ISO 8601 UTC strings with microsecond precision so
that string comparison in SQL orders them correctly.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, select
from sqlalchemy.engine import Engine

from auth.models import Address, Role, User
from auth.tokens import hash_password
from auth.validation import check_new_password

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(100), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("password", Text, nullable=False),  # bcrypt hash
    Column("role", String(20), nullable=False, server_default="user"),
    Column("phone", String(30), nullable=False, server_default=""),
    Column("photo", String(255), nullable=False, server_default="default.jpg"),
    Column("country", String(100)),
    Column("city", String(100)),
    Column("street", String(255)),
    Column("zip", String(20)),
    Column("created_at", String(32), nullable=False),
    Column("password_changed_at", String(32)),
    Column("password_version", Integer, nullable=False, server_default="0"),
    Column("password_reset_token", String(64)),  # SHA-256 hex
    Column("password_reset_expires", String(32)),
)

# Columns selected on normal reads -- everything except the password hash.
_PUBLIC_COLUMNS = [c for c in _users.c if c.name != "password"]


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety (SQLite only)."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _iso(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _parse(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore("sqlite:///ecomauth.db")
        user_id = store.create_user(User(email="a@b.com", name="A"), "secret123")
        user = store.get_by_email("a@b.com", include_password=True)
        store.close()
    """

    def __init__(self, db_url: str = "sqlite:///ecomauth.db") -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite") and "mode=memory" not in db_url and ":memory:" not in db_url:
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Inserts
    # ------------------------------------------------------------------

    def create_user(self, user: User, password: str) -> int:
        """Hash the password, insert the user and return its database ID.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        The service layer translates that into a 400 ValidationError.
        """
        address = user.address
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.insert().values(
                    name=user.name,
                    email=user.email.strip().lower(),
                    password=hash_password(password),
                    role=user.role.value,
                    phone=user.phone,
                    photo=user.photo,
                    country=address.country if address else None,
                    city=address.city if address else None,
                    street=address.street if address else None,
                    zip=address.zip if address else None,
                    created_at=_iso(_now()),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _select(self, include_password: bool):
        columns = list(_users.c) if include_password else _PUBLIC_COLUMNS
        return select(*columns)

    def get_by_id(self, user_id: int, include_password: bool = False) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(self._select(include_password).where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_email(self, email: str, include_password: bool = False) -> User | None:
        """Look up a user by email (case-insensitive). Returns None if not found."""
        normalized = email.strip().lower()
        with self.engine.connect() as conn:
            row = conn.execute(self._select(include_password).where(_users.c.email == normalized)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_reset_token(self, token_hash: str, now: datetime | None = None) -> User | None:
        """Return the user holding this reset-token digest if it has not expired.

        Both conditions are in one WHERE clause, so a wrong token and an
        expired token are indistinguishable to the caller.
        """
        cutoff = _iso(now or _now())
        with self.engine.connect() as conn:
            row = conn.execute(
                self._select(include_password=False).where(
                    (_users.c.password_reset_token == token_hash) & (_users.c.password_reset_expires > cutoff)
                )
            ).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_users(self) -> list[User]:
        """Return all users ordered by email. Admin-only operation."""
        with self.engine.connect() as conn:
            rows = conn.execute(self._select(include_password=False).order_by(_users.c.email)).fetchall()
        return [_row_to_user(r) for r in rows]

    def delete_user(self, user_id: int) -> bool:
        """Permanently delete a user record. Returns True if deleted."""
        with self.engine.connect() as conn:
            result = conn.execute(_users.delete().where(_users.c.id == user_id))
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Narrow updates
    # ------------------------------------------------------------------

    def set_password(self, user_id: int, password: str, password_confirm: str) -> bool:
        """Replace the password hash and invalidate every outstanding credential.

        Validates length and confirmation, re-hashes, stamps password_changed_at,
        increments password_version (every token issued before this call now
        carries an old version) and clears both reset fields.

        Returns True if a row was updated, False if user_id was not found.
        """
        check_new_password(password, password_confirm)
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update()
                .where(_users.c.id == user_id)
                .values(
                    password=hash_password(password),
                    password_changed_at=_iso(_now()),
                    password_version=_users.c.password_version + 1,
                    password_reset_token=None,
                    password_reset_expires=None,
                )
            )
            conn.commit()
        return result.rowcount > 0

    def set_reset_token(self, user_id: int, token_hash: str, expires_at: datetime) -> bool:
        """Store a reset-token digest and its expiry. Overwrites any previous token."""
        if not token_hash:
            raise ValueError("token_hash must not be empty")
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update()
                .where(_users.c.id == user_id)
                .values(password_reset_token=token_hash, password_reset_expires=_iso(expires_at))
            )
            conn.commit()
        return result.rowcount > 0

    def clear_reset_token(self, user_id: int) -> bool:
        """Null the reset-token digest and its expiry together."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update()
                .where(_users.c.id == user_id)
                .values(password_reset_token=None, password_reset_expires=None)
            )
            conn.commit()
        return result.rowcount > 0

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            conn.execute(select(_users.c.id).limit(1))
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    mapping = row._mapping
    address = None
    if mapping["country"] is not None:
        address = Address(
            country=mapping["country"],
            city=mapping["city"],
            street=mapping["street"],
            zip=mapping["zip"],
        )
    return User(
        id=mapping["id"],
        name=mapping["name"],
        email=mapping["email"],
        role=Role(mapping["role"]),
        phone=mapping["phone"],
        photo=mapping["photo"],
        address=address,
        hashed_password=mapping.get("password"),
        password_changed_at=_parse(mapping["password_changed_at"]),
        password_version=mapping["password_version"],
        password_reset_token=mapping["password_reset_token"],
        password_reset_expires=_parse(mapping["password_reset_expires"]),
        created_at=_parse(mapping["created_at"]),
    )
