"""Service adapter protocol.

A service adapter drives one backend: it receives the normalized request,
starts production on the request's event stream and returns the identifiers
of the run it started. Adapters normalize their backend's deltas with
:mod:`chat_runtime.platform.adapters.streaming`.
"""

from dataclasses import dataclass
from typing import Protocol

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from chat_runtime.platform.runtime.actions import ActionInput
from chat_runtime.platform.runtime.events import EventStream
from chat_runtime.platform.runtime.messages import Message


class ForwardedParameters(BaseModel):
    """Model parameters forwarded from the client to the backend.

    Attributes:
        model: Model identifier overriding the adapter default
        max_tokens: Maximum number of tokens to generate
        stop: Stop sequences
        tool_choice: "auto", "none", "required" or "function"
        tool_choice_function_name: Function to force when tool_choice is "function"
        temperature: Sampling temperature
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    model: str | None = None
    max_tokens: int | None = None
    stop: list[str] | None = None
    tool_choice: str | None = None
    tool_choice_function_name: str | None = None
    temperature: float | None = None


@dataclass(frozen=True)
class AdapterRequest:
    """Normalized request handed to a service adapter.

    Attributes:
        messages: Conversation, without agent state messages
        actions: Deduplicated actions the model may call
        event_stream: Stream the adapter must produce into
        thread_id: Conversation thread, if known
        run_id: Run identifier, if known
        forwarded_parameters: Optional client supplied model parameters
    """

    messages: list[Message]
    actions: list[ActionInput]
    event_stream: EventStream
    thread_id: str | None = None
    run_id: str | None = None
    forwarded_parameters: ForwardedParameters | None = None


@dataclass(frozen=True)
class AdapterResponse:
    thread_id: str
    run_id: str | None = None


class ServiceAdapter(Protocol):
    """Protocol every backend integration implements."""

    async def process(self, request: AdapterRequest) -> AdapterResponse:
        """Start producing the backend's response into ``request.event_stream``.

        Args:
            request: Normalized request

        Returns:
            Identifiers of the started run; ``thread_id`` is always set

        Raises:
            AdapterError: If the backend call cannot be started
        """
        ...
