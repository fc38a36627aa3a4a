"""Service adapter for OpenAI-compatible completion APIs through LiteLLM."""

import logging
import uuid
from collections.abc import AsyncIterable, AsyncIterator
from typing import Any, Self

import litellm

from chat_runtime.platform.adapters.base import AdapterRequest, AdapterResponse
from chat_runtime.platform.adapters.openai_format import (
    convert_action_input_to_openai_tool,
    convert_messages_to_openai,
    tool_choice_from_parameters,
)
from chat_runtime.platform.adapters.streaming import CompletionChunk, ToolCallDelta, normalize_stream
from chat_runtime.platform.runtime.errors import AdapterError
from chat_runtime.platform.runtime.events import EventEmitter
from chat_runtime.platform.settings import LitellmSettings

logger = logging.getLogger(__name__)


class LiteLLMAdapter:
    """Streams chat completions from any model LiteLLM can reach.

    The model, API key and base URL default to the adapter configuration;
    forwarded parameters from the client override the model and sampling
    options per request.
    """

    def __init__(
        self,
        model: str,
        api_key: str | None = None,
        api_base: str | None = None,
        temperature: float | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            model: LiteLLM model identifier (e.g. "openai/gpt-4o-mini")
            api_key: API key for the provider or proxy
            api_base: Base URL of the provider or proxy
            temperature: Default sampling temperature
        """
        self._model = model
        self._api_key = api_key
        self._api_base = api_base
        self._temperature = temperature

    @classmethod
    def from_settings(cls, settings: LitellmSettings) -> Self:
        return cls(
            model=settings.model,
            api_key=settings.api_key,
            api_base=settings.api_base,
            temperature=settings.temperature,
        )

    @property
    def model(self) -> str:
        return self._model

    def _completion_kwargs(self, request: AdapterRequest) -> dict[str, Any]:
        params = request.forwarded_parameters
        kwargs: dict[str, Any] = {
            "model": (params.model if params and params.model else self._model),
            "messages": convert_messages_to_openai(request.messages),
            "stream": True,
        }
        if self._api_key:
            kwargs["api_key"] = self._api_key
        if self._api_base:
            kwargs["api_base"] = self._api_base

        tools = [convert_action_input_to_openai_tool(action) for action in request.actions]
        if tools:
            kwargs["tools"] = tools

        temperature = self._temperature
        if params and params.temperature is not None:
            temperature = params.temperature
        if temperature is not None:
            kwargs["temperature"] = temperature

        if params:
            if params.max_tokens:
                kwargs["max_tokens"] = params.max_tokens
            if params.stop:
                kwargs["stop"] = params.stop
            tool_choice = tool_choice_from_parameters(
                params.tool_choice, params.tool_choice_function_name
            )
            if tool_choice and tools:
                kwargs["tool_choice"] = tool_choice
        return kwargs

    async def process(self, request: AdapterRequest) -> AdapterResponse:
        """Start a streaming completion and normalize it into the event stream.

        Raises:
            AdapterError: If the completion request fails before streaming starts
        """
        kwargs = self._completion_kwargs(request)
        try:
            response = await litellm.acompletion(**kwargs)
        except Exception as e:
            raise AdapterError(str(e), adapter=type(self).__name__) from e

        async def produce(emitter: EventEmitter) -> None:
            await normalize_stream(to_completion_chunks(response), emitter, logger)

        request.event_stream.stream(produce)

        return AdapterResponse(
            thread_id=request.thread_id or str(uuid.uuid4()),
            run_id=request.run_id,
        )


async def to_completion_chunks(stream: AsyncIterable[Any]) -> AsyncIterator[CompletionChunk]:
    """Map OpenAI-format streaming chunks to completion chunks.

    Only the first choice and its first tool call are considered.
    """
    async for chunk in stream:
        choices = getattr(chunk, "choices", None) or []
        if not choices:
            continue
        delta = choices[0].delta

        tool_call = None
        tool_calls = getattr(delta, "tool_calls", None)
        if tool_calls:
            call = tool_calls[0]
            function = getattr(call, "function", None)
            tool_call = ToolCallDelta(
                id=getattr(call, "id", None),
                name=getattr(function, "name", None),
                arguments=getattr(function, "arguments", None),
            )

        yield CompletionChunk(
            id=getattr(chunk, "id", None) or str(uuid.uuid4()),
            content=getattr(delta, "content", None),
            tool_call=tool_call,
        )
