"""
models/user.py — User table definition.

No business logic. No imports from services or routes.

Email uniqueness is case-insensitive: the services store emails trimmed and
lowercased, and the unique index on lower(email) enforces it at the DB level
even if a caller skips normalisation.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.extensions import db


class Role:
    USER  = "USER"
    ADMIN = "ADMIN"

    ALL = (USER, ADMIN)


def _new_user_id() -> str:
    return str(uuid.uuid4())


class User(db.Model):
    __tablename__ = "users"

    __table_args__ = (
        CheckConstraint(
            "email LIKE '%@%'",
            name="ck_users_email_format",
        ),
        CheckConstraint(
            "role IN ('USER', 'ADMIN')",
            name="ck_users_role",
        ),
    )

    # Opaque string id (UUID4); also the `sub` claim of access tokens.
    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=_new_user_id,
    )

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
    )

    # bcrypt hash, never the plaintext.
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    first_name:   Mapped[str | None] = mapped_column(String(50))
    last_name:    Mapped[str | None] = mapped_column(String(50))
    street:       Mapped[str | None] = mapped_column(String(100))
    house_number: Mapped[str | None] = mapped_column(String(10))
    postal_code:  Mapped[str | None] = mapped_column(String(10))
    city:         Mapped[str | None] = mapped_column(String(50))

    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=Role.USER,
        server_default=Role.USER,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    refresh_tokens: Mapped[list["RefreshToken"]] = relationship(  # noqa: F821
        "RefreshToken",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<User id={self.id} email={self.email!r} role={self.role}>"


# Case-insensitive uniqueness; lookups compare against the normalised value.
Index("uq_users_email_lower", func.lower(User.email), unique=True)
