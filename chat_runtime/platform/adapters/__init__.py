"""Service adapters.

This module provides the backend integrations of the runtime:
- Service adapter protocol and request/response types
- Streaming normalization of backend deltas
- LiteLLM and LangChain adapters
"""

from chat_runtime.platform.adapters.base import (
    AdapterRequest,
    AdapterResponse,
    ForwardedParameters,
    ServiceAdapter,
)
from chat_runtime.platform.adapters.langchain import LangChainAdapter
from chat_runtime.platform.adapters.litellm_adapter import LiteLLMAdapter
from chat_runtime.platform.adapters.streaming import (
    CompletionChunk,
    StreamNormalizer,
    ToolCallDelta,
    normalize_stream,
)

__all__ = [
    "AdapterRequest",
    "AdapterResponse",
    "ForwardedParameters",
    "ServiceAdapter",
    "LangChainAdapter",
    "LiteLLMAdapter",
    "CompletionChunk",
    "StreamNormalizer",
    "ToolCallDelta",
    "normalize_stream",
]
