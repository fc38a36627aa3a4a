"""Provider-independent message types.

Messages are a tagged union: every variant is a frozen dataclass carrying a
``kind`` tag, and consumers dispatch with ``match`` on that tag. The
``*Input`` pydantic models describe the transport shape and are converted to
messages at the boundary by :func:`convert_inputs_to_messages`.
"""

import json
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class MessageKind(StrEnum):
    """Tag identifying the variant of a message."""

    TEXT = "text"
    ACTION_EXECUTION = "action_execution"
    RESULT = "result"
    AGENT_STATE = "agent_state"


class MessageRole(StrEnum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ActionExecutionScope(StrEnum):
    """Where an action is executed."""

    CLIENT = "client"
    SERVER = "server"


def _new_id() -> str:
    return str(uuid.uuid4())


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True, kw_only=True)
class TextMessage:
    role: MessageRole
    content: str
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_utc_now)
    kind: MessageKind = field(default=MessageKind.TEXT, init=False)


@dataclass(frozen=True, kw_only=True)
class ActionExecutionMessage:
    """A request from the model to execute an action.

    Attributes:
        name: Name of the action to execute
        arguments: Parsed action arguments
        scope: Whether the client or the server executes the action
    """

    name: str
    arguments: dict[str, Any]
    scope: ActionExecutionScope = ActionExecutionScope.CLIENT
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_utc_now)
    kind: MessageKind = field(default=MessageKind.ACTION_EXECUTION, init=False)


@dataclass(frozen=True, kw_only=True)
class ResultMessage:
    action_execution_id: str
    action_name: str
    result: str
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_utc_now)
    kind: MessageKind = field(default=MessageKind.RESULT, init=False)


@dataclass(frozen=True, kw_only=True)
class AgentStateMessage:
    """Snapshot of an agent's state, used to continue an agent session.

    Attributes:
        thread_id: Thread the agent run belongs to
        agent_name: Name of the agent that produced the state
        node_name: Graph node the agent was at
        role: Message role
        state: Raw JSON encoded agent state
        running: Whether the agent was still running
    """

    thread_id: str
    agent_name: str
    node_name: str
    state: str
    role: MessageRole = MessageRole.ASSISTANT
    running: bool = False
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_utc_now)
    kind: MessageKind = field(default=MessageKind.AGENT_STATE, init=False)


type Message = TextMessage | ActionExecutionMessage | ResultMessage | AgentStateMessage


class _InputModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class TextMessageInput(_InputModel):
    content: str
    role: MessageRole


class ActionExecutionMessageInput(_InputModel):
    name: str
    arguments: str = Field("{}", description="JSON encoded action arguments")
    scope: ActionExecutionScope = ActionExecutionScope.CLIENT


class ResultMessageInput(_InputModel):
    action_execution_id: str
    action_name: str
    result: str


class AgentStateMessageInput(_InputModel):
    thread_id: str
    agent_name: str
    node_name: str
    state: str
    role: MessageRole = MessageRole.ASSISTANT
    running: bool = False


class MessageInput(_InputModel):
    """Transport representation of a message; exactly one variant is set."""

    id: str = Field(default_factory=_new_id)
    created_at: datetime = Field(default_factory=_utc_now)
    text_message: TextMessageInput | None = None
    action_execution_message: ActionExecutionMessageInput | None = None
    result_message: ResultMessageInput | None = None
    agent_state_message: AgentStateMessageInput | None = None

    @model_validator(mode="after")
    def _exactly_one_variant(self) -> Self:
        variants = [
            self.text_message,
            self.action_execution_message,
            self.result_message,
            self.agent_state_message,
        ]
        if sum(variant is not None for variant in variants) != 1:
            raise ValueError("a message input must set exactly one message variant")
        return self


def convert_input_to_message(message_input: MessageInput) -> Message:
    """Convert a single transport message into a runtime message.

    Raises:
        ValueError: If action execution arguments are not a JSON object
    """
    base = {"id": message_input.id, "created_at": message_input.created_at}

    if message_input.text_message is not None:
        text = message_input.text_message
        return TextMessage(role=text.role, content=text.content, **base)

    if message_input.action_execution_message is not None:
        action = message_input.action_execution_message
        arguments = json.loads(action.arguments) if action.arguments else {}
        if not isinstance(arguments, dict):
            raise ValueError(f"arguments of action '{action.name}' must be a JSON object")
        return ActionExecutionMessage(
            name=action.name,
            arguments=arguments,
            scope=action.scope,
            **base,
        )

    if message_input.result_message is not None:
        result = message_input.result_message
        return ResultMessage(
            action_execution_id=result.action_execution_id,
            action_name=result.action_name,
            result=result.result,
            **base,
        )

    state = message_input.agent_state_message
    assert state is not None
    return AgentStateMessage(
        thread_id=state.thread_id,
        agent_name=state.agent_name,
        node_name=state.node_name,
        state=state.state,
        role=state.role,
        running=state.running,
        **base,
    )


def convert_inputs_to_messages(inputs: list[MessageInput]) -> list[Message]:
    return [convert_input_to_message(message_input) for message_input in inputs]
