"""chat-runtime - A runtime streaming normalized chat events from model backends and agents."""

from .platform.server.app import create_app
from .platform.settings import Settings


def app():
    """Create the FastAPI application instance."""
    settings = Settings()
    return create_app(settings)
