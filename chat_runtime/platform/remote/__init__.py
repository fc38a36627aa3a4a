"""Remote action and agent sources.

This module provides the sources of actions and agents beyond the
server-configured actions:
- LangServe-style remote chains
- Remote endpoints exposing actions and agents over HTTP
- In-process LangGraph agents
"""

from chat_runtime.platform.remote.chains import RemoteChain
from chat_runtime.platform.remote.endpoints import (
    RemoteAgentAction,
    RemoteEndpoint,
    RemoteInfo,
    discover_remote,
)
from chat_runtime.platform.remote.langgraph import LangGraphAgentAction, LangGraphEventParser
from chat_runtime.platform.remote.protocol import Executable, SessionAgent

__all__ = [
    "RemoteChain",
    "RemoteAgentAction",
    "RemoteEndpoint",
    "RemoteInfo",
    "discover_remote",
    "LangGraphAgentAction",
    "LangGraphEventParser",
    "Executable",
    "SessionAgent",
]
