"""WSGI entry point for the performance test service."""

import os

from perftest_app import create_app

app = create_app(os.getenv("FLASK_ENV", "production"))
