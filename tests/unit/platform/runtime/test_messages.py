"""Unit tests for runtime messages and their transport inputs."""

import dataclasses

import pytest
from pydantic import ValidationError

from chat_runtime.platform.runtime.messages import (
    ActionExecutionMessage,
    ActionExecutionScope,
    AgentStateMessage,
    MessageInput,
    MessageKind,
    MessageRole,
    ResultMessage,
    TextMessage,
    convert_input_to_message,
    convert_inputs_to_messages,
)


class TestMessages:
    """Tests for the message dataclasses."""

    def test_kind_tags(self):
        """Each variant carries its own kind tag."""
        assert TextMessage(role=MessageRole.USER, content="hi").kind == MessageKind.TEXT
        assert (
            ActionExecutionMessage(name="a", arguments={}).kind == MessageKind.ACTION_EXECUTION
        )
        assert (
            ResultMessage(action_execution_id="1", action_name="a", result="ok").kind
            == MessageKind.RESULT
        )
        assert (
            AgentStateMessage(thread_id="t", agent_name="a", node_name="n", state="{}").kind
            == MessageKind.AGENT_STATE
        )

    def test_ids_and_timestamps_are_generated(self):
        """Messages get a unique id and a timezone-aware creation time."""
        first = TextMessage(role=MessageRole.USER, content="a")
        second = TextMessage(role=MessageRole.USER, content="b")

        assert first.id != second.id
        assert first.created_at.tzinfo is not None

    def test_messages_are_frozen(self):
        """Messages are immutable."""
        message = TextMessage(role=MessageRole.USER, content="hi")

        with pytest.raises(dataclasses.FrozenInstanceError):
            message.content = "changed"  # type: ignore[misc]

    def test_kind_cannot_be_overridden(self):
        """The kind tag is not a constructor argument."""
        with pytest.raises(TypeError):
            TextMessage(role=MessageRole.USER, content="hi", kind=MessageKind.RESULT)  # type: ignore[call-arg]


class TestMessageInput:
    """Tests for MessageInput validation."""

    def test_accepts_camel_case(self):
        """Transport camelCase names are accepted."""
        message_input = MessageInput.model_validate(
            {
                "id": "m-1",
                "resultMessage": {
                    "actionExecutionId": "call-1",
                    "actionName": "search",
                    "result": "42",
                },
            }
        )

        assert message_input.result_message is not None
        assert message_input.result_message.action_execution_id == "call-1"

    def test_rejects_no_variant(self):
        """An input without any message variant is invalid."""
        with pytest.raises(ValidationError):
            MessageInput.model_validate({"id": "m-1"})

    def test_rejects_several_variants(self):
        """An input with two message variants is invalid."""
        with pytest.raises(ValidationError):
            MessageInput.model_validate(
                {
                    "textMessage": {"role": "user", "content": "hi"},
                    "resultMessage": {
                        "actionExecutionId": "1",
                        "actionName": "a",
                        "result": "r",
                    },
                }
            )

    def test_rejects_unknown_role(self):
        with pytest.raises(ValidationError):
            MessageInput.model_validate({"textMessage": {"role": "robot", "content": "hi"}})


class TestConvertInputToMessage:
    """Tests for converting transport inputs to runtime messages."""

    def test_text_message_keeps_id(self):
        """Conversion keeps the transport id and creation time."""
        message_input = MessageInput.model_validate(
            {"id": "m-1", "textMessage": {"role": "user", "content": "hello"}}
        )

        message = convert_input_to_message(message_input)

        assert isinstance(message, TextMessage)
        assert message.id == "m-1"
        assert message.created_at == message_input.created_at
        assert message.role == MessageRole.USER
        assert message.content == "hello"

    def test_action_arguments_are_parsed(self):
        """Action arguments arrive as a JSON string and are parsed."""
        message_input = MessageInput.model_validate(
            {
                "actionExecutionMessage": {
                    "name": "search",
                    "arguments": '{"query": "weather"}',
                    "scope": "server",
                }
            }
        )

        message = convert_input_to_message(message_input)

        assert isinstance(message, ActionExecutionMessage)
        assert message.arguments == {"query": "weather"}
        assert message.scope == ActionExecutionScope.SERVER

    def test_empty_action_arguments(self):
        message_input = MessageInput.model_validate(
            {"actionExecutionMessage": {"name": "search", "arguments": ""}}
        )

        assert convert_input_to_message(message_input).arguments == {}

    def test_invalid_action_arguments(self):
        """Arguments that are not a JSON object are rejected."""
        message_input = MessageInput.model_validate(
            {"actionExecutionMessage": {"name": "search", "arguments": "[1, 2]"}}
        )

        with pytest.raises(ValueError):
            convert_input_to_message(message_input)

    def test_agent_state_keeps_raw_state(self):
        """Agent state stays a raw JSON string."""
        message_input = MessageInput.model_validate(
            {
                "agentStateMessage": {
                    "threadId": "t-1",
                    "agentName": "weather",
                    "nodeName": "reasoner",
                    "state": '{"messages": []}',
                    "running": True,
                }
            }
        )

        message = convert_input_to_message(message_input)

        assert isinstance(message, AgentStateMessage)
        assert message.state == '{"messages": []}'
        assert message.running is True
        assert message.role == MessageRole.ASSISTANT

    def test_convert_inputs_keeps_order(self):
        inputs = [
            MessageInput.model_validate({"textMessage": {"role": "system", "content": "a"}}),
            MessageInput.model_validate({"textMessage": {"role": "user", "content": "b"}}),
        ]

        messages = convert_inputs_to_messages(inputs)

        assert [m.content for m in messages] == ["a", "b"]
