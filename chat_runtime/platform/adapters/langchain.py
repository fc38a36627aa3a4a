"""Service adapter for LangChain chat models."""

import logging
import uuid
from collections.abc import AsyncIterator
from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import (
    AIMessage,
    AIMessageChunk,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)
from langchain_core.runnables import Runnable

from chat_runtime.platform.adapters.base import AdapterRequest, AdapterResponse
from chat_runtime.platform.adapters.openai_format import (
    convert_action_input_to_openai_tool,
    tool_choice_from_parameters,
)
from chat_runtime.platform.adapters.streaming import CompletionChunk, ToolCallDelta, normalize_stream
from chat_runtime.platform.runtime.errors import AdapterError
from chat_runtime.platform.runtime.events import EventEmitter
from chat_runtime.platform.runtime.messages import Message, MessageKind, MessageRole

logger = logging.getLogger(__name__)


def convert_message_to_langchain(message: Message) -> BaseMessage | None:
    """Convert a runtime message to a LangChain message.

    Returns:
        The LangChain message, or None for agent state messages
    """
    match message.kind:
        case MessageKind.TEXT:
            if message.role == MessageRole.SYSTEM:
                return SystemMessage(content=message.content, id=message.id)
            if message.role == MessageRole.ASSISTANT:
                return AIMessage(content=message.content, id=message.id)
            return HumanMessage(content=message.content, id=message.id)
        case MessageKind.ACTION_EXECUTION:
            return AIMessage(
                content="",
                tool_calls=[{"id": message.id, "name": message.name, "args": message.arguments}],
            )
        case MessageKind.RESULT:
            return ToolMessage(
                content=message.result,
                tool_call_id=message.action_execution_id,
                name=message.action_name,
            )
        case MessageKind.AGENT_STATE:
            return None


def _chunk_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(
            part.get("text", "") if isinstance(part, dict) else str(part) for part in content
        )
    return str(content) if content else ""


def to_completion_chunk(chunk: AIMessageChunk) -> CompletionChunk:
    """Map a LangChain message chunk to a completion chunk (first tool call only)."""
    tool_call = None
    if chunk.tool_call_chunks:
        call = chunk.tool_call_chunks[0]
        tool_call = ToolCallDelta(
            id=call.get("id"),
            name=call.get("name"),
            arguments=call.get("args"),
        )
    return CompletionChunk(
        id=chunk.id or str(uuid.uuid4()),
        content=_chunk_text(chunk.content) or None,
        tool_call=tool_call,
    )


class LangChainAdapter:
    """Streams responses from any LangChain chat model.

    Actions are bound to the model as OpenAI-format tools; the model's
    ``astream`` chunks are normalized into runtime events.
    """

    def __init__(self, chat_model: BaseChatModel) -> None:
        self._chat_model = chat_model

    def _bind(self, request: AdapterRequest) -> Runnable:
        tools = [convert_action_input_to_openai_tool(action) for action in request.actions]
        if not tools:
            return self._chat_model

        params = request.forwarded_parameters
        kwargs: dict[str, Any] = {}
        if params:
            tool_choice = tool_choice_from_parameters(
                params.tool_choice, params.tool_choice_function_name
            )
            if tool_choice:
                kwargs["tool_choice"] = tool_choice
        return self._chat_model.bind_tools(tools, **kwargs)

    async def process(self, request: AdapterRequest) -> AdapterResponse:
        """Bind tools, then stream the model's answer into the event stream.

        Raises:
            AdapterError: If the tools cannot be bound to the model
        """
        converted = (convert_message_to_langchain(message) for message in request.messages)
        messages = [message for message in converted if message is not None]

        try:
            model = self._bind(request)
        except Exception as e:
            raise AdapterError(str(e), adapter=type(self).__name__) from e

        stream_kwargs: dict[str, Any] = {}
        params = request.forwarded_parameters
        if params and params.stop:
            stream_kwargs["stop"] = params.stop

        async def chunks() -> AsyncIterator[CompletionChunk]:
            async for chunk in model.astream(messages, **stream_kwargs):
                if isinstance(chunk, AIMessageChunk):
                    yield to_completion_chunk(chunk)

        async def produce(emitter: EventEmitter) -> None:
            await normalize_stream(chunks(), emitter, logger)

        request.event_stream.stream(produce)

        return AdapterResponse(
            thread_id=request.thread_id or str(uuid.uuid4()),
            run_id=request.run_id,
        )
