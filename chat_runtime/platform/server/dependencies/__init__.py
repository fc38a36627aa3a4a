"""FastAPI dependencies."""

from chat_runtime.platform.server.dependencies.runtime import get_runtime, get_service_adapter

__all__ = ["get_runtime", "get_service_adapter"]
