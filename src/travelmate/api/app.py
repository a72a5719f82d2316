"""ASGI entrypoint (uvicorn travelmate.api.app:app)."""

from travelmate.observability.logging import configure_logging

from .factory import create_app

configure_logging()

app = create_app()
