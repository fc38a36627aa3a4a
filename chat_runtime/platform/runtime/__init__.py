"""Runtime core types.

This module provides the provider-independent vocabulary of the runtime:
- Messages and their transport inputs
- Actions and the action registry merge
- Runtime events and the event stream
- The runtime exception hierarchy

The orchestrator lives in :mod:`chat_runtime.platform.runtime.runtime`.
"""

from chat_runtime.platform.runtime.actions import (
    Action,
    ActionInput,
    ActionsProvider,
    Parameter,
    flatten_actions_no_duplicates,
    merge_actions,
    parameters_to_json_schema,
    static_actions,
)
from chat_runtime.platform.runtime.errors import (
    AdapterError,
    AgentNotFoundError,
    ChainResolutionError,
    ChatRuntimeError,
    HookError,
    InvalidSessionError,
    NoAgentStateError,
    UnsupportedAgentError,
)
from chat_runtime.platform.runtime.events import (
    EventEmitter,
    EventStream,
    RuntimeEvent,
    RuntimeEventType,
    parse_runtime_event,
)
from chat_runtime.platform.runtime.messages import (
    ActionExecutionMessage,
    AgentStateMessage,
    Message,
    MessageInput,
    MessageKind,
    MessageRole,
    ResultMessage,
    TextMessage,
    convert_inputs_to_messages,
)

__all__ = [
    # Actions
    "Action",
    "ActionInput",
    "ActionsProvider",
    "Parameter",
    "flatten_actions_no_duplicates",
    "merge_actions",
    "parameters_to_json_schema",
    "static_actions",
    # Errors
    "AdapterError",
    "AgentNotFoundError",
    "ChainResolutionError",
    "ChatRuntimeError",
    "HookError",
    "InvalidSessionError",
    "NoAgentStateError",
    "UnsupportedAgentError",
    # Events
    "EventEmitter",
    "EventStream",
    "RuntimeEvent",
    "RuntimeEventType",
    "parse_runtime_event",
    # Messages
    "ActionExecutionMessage",
    "AgentStateMessage",
    "Message",
    "MessageInput",
    "MessageKind",
    "MessageRole",
    "ResultMessage",
    "TextMessage",
    "convert_inputs_to_messages",
]
