"""
tests/conftest.py — Fixtures shared by the unit and integration suites.

Design:
  - The app is created once per session using create_app("testing").
    TestingConfig defaults to in-memory SQLite (TEST_DATABASE_URL overrides it,
    e.g. a PostgreSQL test database) and BCRYPT_LOG_ROUNDS=4 to keep bcrypt fast.
  - All tables are created once via db.create_all() at session start.
  - Between tests, all rows are deleted in FK-safe order so tests are isolated.

Fixtures:
  app      — session-scoped Flask app
  client   — Flask test client (function-scoped)
  session  — db.session inside a pushed app context, for service-level tests
"""

from __future__ import annotations

import pytest
from sqlalchemy import text

from backend.app import create_app
from backend.app.extensions import db as _db


@pytest.fixture(scope="session")
def app():
    flask_app = create_app("testing")

    with flask_app.app_context():
        _db.create_all()

    yield flask_app

    with flask_app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def clean_tables(app):
    """
    Deletes all rows after every test.

    refresh_tokens goes first: SQLite does not enforce ON DELETE CASCADE
    unless foreign keys are switched on per connection.
    """
    yield

    with app.app_context():
        _db.session.rollback()
        _db.session.execute(text("DELETE FROM refresh_tokens"))
        _db.session.execute(text("DELETE FROM users"))
        _db.session.commit()
        _db.session.remove()


@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client and cookie jar."""
    return app.test_client()


@pytest.fixture
def session(app):
    """
    db.session bound to a pushed app context.

    Do not mix with `client` in one test while this context is pushed: test
    requests would reuse the context and share the session.
    """
    with app.app_context():
        yield _db.session
        _db.session.rollback()
