"""Conversion of runtime messages and actions to the OpenAI chat format.

Used by adapters whose backend speaks the OpenAI chat completions dialect
(LiteLLM, LangChain chat models accepting OpenAI tool definitions).
"""

import json
import logging
from typing import Any

from chat_runtime.platform.runtime.actions import ActionInput
from chat_runtime.platform.runtime.messages import Message, MessageKind

logger = logging.getLogger(__name__)


def convert_action_input_to_openai_tool(action: ActionInput) -> dict[str, Any]:
    """Convert an action input to an OpenAI function tool definition.

    Args:
        action: Action with a JSON encoded parameter schema

    Returns:
        Tool dict with type "function"
    """
    try:
        parameters = json.loads(action.json_schema) if action.json_schema else {}
    except json.JSONDecodeError:
        logger.warning(
            "Invalid JSON schema for action '%s', sending it without parameters.",
            action.name,
        )
        parameters = {}

    return {
        "type": "function",
        "function": {
            "name": action.name,
            "description": action.description,
            "parameters": parameters or {"type": "object", "properties": {}},
        },
    }


def convert_message_to_openai(message: Message) -> dict[str, Any] | None:
    """Convert a runtime message to an OpenAI chat message.

    Returns:
        The chat message, or None for agent state messages which the model never sees
    """
    match message.kind:
        case MessageKind.TEXT:
            return {"role": str(message.role), "content": message.content}
        case MessageKind.ACTION_EXECUTION:
            return {
                "role": "assistant",
                "content": None,
                "tool_calls": [
                    {
                        "id": message.id,
                        "type": "function",
                        "function": {
                            "name": message.name,
                            "arguments": json.dumps(message.arguments),
                        },
                    }
                ],
            }
        case MessageKind.RESULT:
            return {
                "role": "tool",
                "content": message.result,
                "tool_call_id": message.action_execution_id,
            }
        case MessageKind.AGENT_STATE:
            return None


def convert_messages_to_openai(messages: list[Message]) -> list[dict[str, Any]]:
    converted = (convert_message_to_openai(message) for message in messages)
    return [message for message in converted if message is not None]


def tool_choice_from_parameters(
    tool_choice: str | None,
    function_name: str | None,
) -> str | dict[str, Any] | None:
    """Translate forwarded tool choice parameters into OpenAI's ``tool_choice``."""
    if tool_choice == "function" and function_name:
        return {"type": "function", "function": {"name": function_name}}
    return tool_choice
