"""
tests/integration/conftest.py — Helpers for the HTTP-level tests.

The app / client fixtures live in tests/conftest.py. The functions below are
plain helpers (not fixtures) so they can be called with arbitrary arguments:

  register(client, ...)      → response data dict (user + access_token)
  login(client, ...)         → response data dict (user + access_token)
  refresh_cookie(client)     → current raw refresh token from the cookie jar
  auth_headers(token)        → {"Authorization": "Bearer <token>"}
"""

from __future__ import annotations

from backend.app.extensions import db
from backend.app.models.user import User

REFRESH_COOKIE = "refresh_token"

DEFAULT_PASSWORD = "Password1"


def registration_payload(email: str, password: str = DEFAULT_PASSWORD) -> dict:
    return {
        "email": email,
        "password": password,
        "first_name": "Alice",
        "last_name": "Jansen",
        "street": "Main Street",
        "house_number": "12",
        "postal_code": "1234 AB",
        "city": "Amsterdam",
    }


def register(client, email: str = "alice@test.com", password: str = DEFAULT_PASSWORD) -> dict:
    """Registers a new user and returns the response data dict."""
    resp = client.post("/api/v1/auth/register", json=registration_payload(email, password))
    assert resp.status_code == 201, f"register failed: {resp.get_json()}"
    return resp.get_json()["data"]


def login(client, email: str, password: str = DEFAULT_PASSWORD) -> dict:
    """Logs in a user and returns the response data dict."""
    resp = client.post("/api/v1/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, f"login failed: {resp.get_json()}"
    return resp.get_json()["data"]


def refresh_cookie(client) -> str | None:
    cookie = client.get_cookie(REFRESH_COOKIE)
    return cookie.value if cookie is not None else None


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def promote_to_admin(app, email: str) -> None:
    with app.app_context():
        user = db.session.query(User).filter_by(email=email).one()
        user.role = "ADMIN"
        db.session.commit()
