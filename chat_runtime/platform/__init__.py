"""Chat runtime infrastructure module.

This module provides the building blocks of the runtime:
- Runtime core: messages, actions, events and the orchestrator
- Service adapters for model backends
- Remote chains, endpoints and LangGraph agents
- FastAPI server configuration
- Observability utilities
"""

from chat_runtime.platform.adapters import (
    AdapterRequest,
    AdapterResponse,
    LangChainAdapter,
    LiteLLMAdapter,
    ServiceAdapter,
)
from chat_runtime.platform.remote import (
    LangGraphAgentAction,
    RemoteChain,
    RemoteEndpoint,
    SessionAgent,
)
from chat_runtime.platform.runtime import Action, EventStream, Parameter, static_actions
from chat_runtime.platform.runtime.runtime import (
    AgentSession,
    ChatRuntime,
    Middleware,
    RuntimeRequest,
    RuntimeResponse,
)
from chat_runtime.platform.settings import Settings

__all__ = [
    # Orchestrator
    "ChatRuntime",
    "Middleware",
    "RuntimeRequest",
    "RuntimeResponse",
    "AgentSession",
    # Actions and events
    "Action",
    "Parameter",
    "static_actions",
    "EventStream",
    # Adapters
    "AdapterRequest",
    "AdapterResponse",
    "LangChainAdapter",
    "LiteLLMAdapter",
    "ServiceAdapter",
    # Sources
    "LangGraphAgentAction",
    "RemoteChain",
    "RemoteEndpoint",
    "SessionAgent",
    "Settings",
]
