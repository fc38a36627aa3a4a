"""FastAPI application factory and server configuration.

This module creates and configures the FastAPI application with all middleware,
routes, and lifecycle management.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from chat_runtime.platform.adapters.base import ServiceAdapter
from chat_runtime.platform.adapters.litellm_adapter import LiteLLMAdapter
from chat_runtime.platform.observability.logging import configure_logging
from chat_runtime.platform.observability.metrics import prometheus_middleware
from chat_runtime.platform.runtime.runtime import ChatRuntime
from chat_runtime.platform.server.health import HealthCheck
from chat_runtime.platform.server.middlewares import CorrelationIdMiddleware
from chat_runtime.platform.server.routes import root as root_router
from chat_runtime.platform.settings import Settings


def lifespan_closure(
    settings: Settings,
    runtime: ChatRuntime | None,
    service_adapter: ServiceAdapter | None,
):
    @asynccontextmanager
    async def lifespan(app):
        """
        Use this to initialize all of the singleton dependencies and shared
        objects.  i.e. the runtime and its default service adapter
        """
        configure_logging(settings.app_http.log_level, json_output=settings.app_http.log_json)

        app.state.settings = settings
        app.state.runtime = runtime or ChatRuntime.from_settings(settings)
        app.state.service_adapter = service_adapter or LiteLLMAdapter.from_settings(
            settings.litellm
        )

        HealthCheck.enable()
        yield
        HealthCheck.disable()

        # let pending after-request hooks finish
        await app.state.runtime.wait_background_tasks(
            timeout=settings.runtime.shutdown_timeout_seconds
        )

    return lifespan


def create_app(
    settings: Settings,
    runtime: ChatRuntime | None = None,
    service_adapter: ServiceAdapter | None = None,
):
    """Create and configure the FastAPI application.

    Args:
        settings: Application settings instance
        runtime: Runtime to serve; built from settings when omitted
        service_adapter: Backend used for new turns; a LiteLLM adapter when omitted

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(lifespan=lifespan_closure(settings, runtime, service_adapter))
    app.add_middleware(CorrelationIdMiddleware)
    app.middleware("http")(prometheus_middleware)

    # Include platform routes (health, metrics, chat)
    app.include_router(root_router)

    return app
