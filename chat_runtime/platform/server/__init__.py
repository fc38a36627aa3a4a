"""HTTP server infrastructure module.

This module provides the FastAPI application factory and HTTP-related utilities:
- Application factory
- Route handlers
- FastAPI dependencies
- Health checks
"""

from chat_runtime.platform.server.app import create_app
from chat_runtime.platform.server.health import HealthCheck

__all__ = [
    "create_app",
    "HealthCheck",
]
