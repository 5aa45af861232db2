"""
commands.py — Flask CLI commands.

  flask --app backend.wsgi seed-users            create demo admin + user (idempotent)
  flask --app backend.wsgi prune-refresh-tokens  delete expired / revoked token rows
"""

from __future__ import annotations

import click
from flask import Flask
from sqlalchemy import select

from backend.app.extensions import db
from backend.app.models.user import Role, User
from backend.app.services.password_hasher import hash_password
from backend.app.services.refresh_token_service import prune_refresh_tokens

DEMO_USERS = (
    {
        "email": "admin@frontrow.test",
        "password": "Admin123!",
        "first_name": "Admin",
        "last_name": "User",
        "street": "Admin Street",
        "house_number": "1",
        "postal_code": "1234AB",
        "city": "Admin City",
        "role": Role.ADMIN,
    },
    {
        "email": "user@user.test",
        "password": "User123!",
        "first_name": "User",
        "last_name": "User",
        "street": "User Street",
        "house_number": "2",
        "postal_code": "5678CD",
        "city": "User City",
        "role": Role.USER,
    },
)


def seed_users() -> int:
    """Inserts the demo accounts that do not exist yet. Returns how many were created."""
    created = 0
    for account in DEMO_USERS:
        exists = db.session.execute(
            select(User.id).where(User.email == account["email"])
        ).scalar_one_or_none()
        if exists is not None:
            continue

        fields = {k: v for k, v in account.items() if k != "password"}
        db.session.add(User(password_hash=hash_password(account["password"]), **fields))
        created += 1

    db.session.commit()
    return created


def register_commands(app: Flask) -> None:

    @app.cli.command("seed-users")
    def seed_users_command():
        """Create the demo admin and user accounts."""
        created = seed_users()
        click.echo(f"Seeded {created} user(s).")

    @app.cli.command("prune-refresh-tokens")
    def prune_refresh_tokens_command():
        """Delete expired or revoked refresh tokens."""
        removed = prune_refresh_tokens(db.session)
        db.session.commit()
        click.echo(f"Removed {removed} refresh token(s).")
