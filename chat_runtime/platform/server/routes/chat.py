"""Chat endpoint streaming runtime events as Server-Sent Events.

The request body is the runtime's transport shape (camelCase accepted). The
response is ``text/event-stream`` with one ``data: <json>`` frame per event;
``X-Thread-Id`` and ``X-Run-Id`` headers identify the run.
"""

import asyncio
import json
from collections.abc import AsyncGenerator
from typing import Any, Self

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from starlette.types import Receive, Scope, Send

from chat_runtime.platform.adapters.base import ForwardedParameters, ServiceAdapter
from chat_runtime.platform.observability.logging import get_logger
from chat_runtime.platform.runtime.actions import ActionInput
from chat_runtime.platform.runtime.errors import (
    AdapterError,
    AgentNotFoundError,
    ChatRuntimeError,
    HookError,
    InvalidSessionError,
    NoAgentStateError,
    UnsupportedAgentError,
)
from chat_runtime.platform.runtime.events import (
    ActionExecutionArgs,
    ActionExecutionEnd,
    ActionExecutionStart,
    Complete,
    RuntimeEvent,
    TextMessageContent,
    TextMessageEnd,
    TextMessageStart,
)
from chat_runtime.platform.runtime.messages import (
    ActionExecutionMessage,
    Message,
    MessageInput,
    MessageRole,
    TextMessage,
)
from chat_runtime.platform.runtime.runtime import (
    AgentSession,
    ChatRuntime,
    RuntimeRequest,
    RuntimeResponse,
)
from chat_runtime.platform.server.dependencies.runtime import get_runtime, get_service_adapter

logger = get_logger(__name__)

chat_router = APIRouter(tags=["chat"])

THREAD_ID_HEADER = "X-Thread-Id"
RUN_ID_HEADER = "X-Run-Id"

ERROR_STATUS: dict[type[ChatRuntimeError], int] = {
    NoAgentStateError: 400,
    InvalidSessionError: 400,
    HookError: 400,
    AgentNotFoundError: 404,
    UnsupportedAgentError: 422,
    AdapterError: 502,
}


class ChatPayload(BaseModel):
    """Request payload for a chat turn or an agent session continuation.

    Attributes:
        messages: Conversation so far
        actions: Actions declared by the client
        agent_session: Agent session to continue, if any
        thread_id: Conversation thread ID (generated when missing)
        run_id: Run identifier
        forwarded_parameters: Model parameters forwarded to the backend
        properties: Opaque properties made available to hooks and action providers
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    messages: list[MessageInput] = Field(default_factory=list)
    actions: list[ActionInput] = Field(default_factory=list)
    agent_session: AgentSession | None = None
    thread_id: str | None = None
    run_id: str | None = None
    forwarded_parameters: ForwardedParameters | None = None
    properties: dict[str, Any] = Field(default_factory=dict)


class OutputMessageCollector:
    """Rebuilds output messages from the events sent to the client."""

    def __init__(self) -> None:
        self.messages: list[Message] = []
        self._text: list[str] | None = None
        self._text_id: str | None = None
        self._action: tuple[str, str] | None = None
        self._args: list[str] = []

    def add(self, event: RuntimeEvent) -> None:
        match event:
            case TextMessageStart(message_id=message_id):
                self._text_id = message_id
                self._text = []
            case TextMessageContent(content=content) if self._text is not None:
                self._text.append(content)
            case TextMessageEnd() if self._text is not None:
                self.messages.append(
                    TextMessage(
                        id=self._text_id or "",
                        role=MessageRole.ASSISTANT,
                        content="".join(self._text),
                    )
                )
                self._text = None
            case ActionExecutionStart(action_execution_id=action_id, action_name=name):
                self._action = (action_id, name)
                self._args = []
            case ActionExecutionArgs(args=args) if self._action is not None:
                self._args.append(args)
            case ActionExecutionEnd() if self._action is not None:
                action_id, name = self._action
                self.messages.append(
                    ActionExecutionMessage(
                        id=action_id,
                        name=name,
                        arguments=_parse_arguments("".join(self._args)),
                    )
                )
                self._action = None


def _parse_arguments(raw: str) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        arguments = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Streamed action arguments are not valid JSON: %r", raw)
        return {}
    return arguments if isinstance(arguments, dict) else {}


class ServerSentEvents:
    """SSE frames of a runtime response.

    The output messages are settled and the event stream is released exactly
    once, by :meth:`aclose` or when iteration ends or is cancelled, whether or
    not the first frame was ever requested.
    """

    def __init__(
        self,
        response: RuntimeResponse,
        output_messages: asyncio.Future[list[Message]],
    ) -> None:
        self._response = response
        self._output_messages = output_messages
        self._collector = OutputMessageCollector()
        self._events: AsyncGenerator[RuntimeEvent] | None = None
        self._finished = False

    def __aiter__(self) -> Self:
        return self

    async def __anext__(self) -> str:
        if self._events is None:
            self._events = self._response.event_stream.subscribe()
        try:
            event = await anext(self._events)
        except StopAsyncIteration:
            self._settle()
            raise
        except BaseException:
            # cancelled by a client disconnect, so nothing can be awaited here
            self._release()
            raise

        self._collector.add(event)
        if isinstance(event, Complete):
            self._finished = True
        return f"data: {json.dumps(event.to_dict())}\n\n"

    async def aclose(self) -> None:
        if self._events is not None:
            await self._events.aclose()
        if not self._finished:
            await self._response.event_stream.aclose()
        self._settle()

    def _release(self) -> None:
        if not self._finished:
            self._response.event_stream.cancel()
        self._settle()

    def _settle(self) -> None:
        if self._output_messages.done():
            return
        if self._finished:
            self._output_messages.set_result(self._collector.messages)
            return
        logger.warning(
            "chat_stream_discarded",
            thread_id=self._response.thread_id,
            delivered_messages=len(self._collector.messages),
        )
        self._output_messages.set_exception(
            RuntimeError("client disconnected before the stream completed")
        )


class EventStreamResponse(StreamingResponse):
    """Streaming response that always closes its event source.

    Starlette neither starts nor closes the body iterator when the client goes
    away before or while the body is sent.
    """

    media_type = "text/event-stream"

    def __init__(self, content: ServerSentEvents, headers: dict[str, str] | None = None) -> None:
        super().__init__(content, headers=headers)
        self.events = content

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            await self.events.aclose()


@chat_router.post("/chat")
async def chat(
    payload: ChatPayload,
    runtime: ChatRuntime = Depends(get_runtime),
    service_adapter: ServiceAdapter = Depends(get_service_adapter),
) -> EventStreamResponse:
    """Process a chat request and stream the resulting events.

    Raises:
        HTTPException: 400/404/422 for invalid requests, 502 when the backend fails
    """
    output_messages: asyncio.Future[list[Message]] = asyncio.get_running_loop().create_future()
    try:
        response = await runtime.process(
            RuntimeRequest(
                service_adapter=service_adapter,
                messages=payload.messages,
                actions=payload.actions,
                output_messages=output_messages,
                agent_session=payload.agent_session,
                thread_id=payload.thread_id,
                run_id=payload.run_id,
                forwarded_parameters=payload.forwarded_parameters,
                properties=payload.properties,
            )
        )
    except ChatRuntimeError as e:
        status_code = ERROR_STATUS.get(type(e), 500)
        raise HTTPException(status_code=status_code, detail=str(e)) from e
    except ValueError as e:
        # malformed action arguments in the conversation
        raise HTTPException(status_code=400, detail=str(e)) from e

    headers = {THREAD_ID_HEADER: response.thread_id, "Cache-Control": "no-cache"}
    if response.run_id:
        headers[RUN_ID_HEADER] = response.run_id

    return EventStreamResponse(ServerSentEvents(response, output_messages), headers=headers)
