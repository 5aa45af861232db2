"""
wsgi.py — Entry point for `flask --app backend.wsgi run` and WSGI servers.

The config is selected from FLASK_ENV (development when unset).
"""

import os

from backend.app import create_app

app = create_app(os.getenv("FLASK_ENV", "development"))
