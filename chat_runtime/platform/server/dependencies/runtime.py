"""FastAPI dependencies giving routes access to the runtime and its default adapter."""

from fastapi import Request

from chat_runtime.platform.adapters.base import ServiceAdapter
from chat_runtime.platform.runtime.runtime import ChatRuntime


def get_runtime(request: Request) -> ChatRuntime:
    return request.app.state.runtime


def get_service_adapter(request: Request) -> ServiceAdapter:
    return request.app.state.service_adapter
