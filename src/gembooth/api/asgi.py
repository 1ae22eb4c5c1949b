"""ASGI entrypoint for the gembooth API."""

from gembooth.api.app import create_app
from gembooth.containers import build_container

app = create_app(build_container())
