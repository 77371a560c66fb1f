"""WSGI entry point for the Performance Observer service."""

import os

from observer_app import create_app

app = create_app(os.getenv("FLASK_ENV", "production"))
