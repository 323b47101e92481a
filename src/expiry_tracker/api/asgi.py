"""ASGI entrypoint for the expiry tracker API."""

from expiry_tracker.api.app import create_app
from expiry_tracker.containers import build_container

app = create_app(build_container())
