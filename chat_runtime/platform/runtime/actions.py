"""Actions and the action registry merge.

An action is identified by its name. When several sources declare the same
name, the first one registered wins, with sources ordered
local -> chain -> remote -> client.
"""

import json
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

type ActionHandler = Callable[[dict[str, Any]], Any | Awaitable[Any]]
type ActionsProvider = Callable[[Mapping[str, Any]], list["Action"]]

_ARRAY_SUFFIX = "[]"


@dataclass(frozen=True)
class Parameter:
    """Typed description of a single action parameter.

    Attributes:
        name: Parameter name
        type: One of string, number, boolean, object, or any of those suffixed with "[]"
        description: Human-readable description for the model
        required: Whether the parameter must be provided
        enum: Allowed values for string parameters
        attributes: Nested parameters for object and object[] types
    """

    name: str
    type: str = "string"
    description: str = ""
    required: bool = True
    enum: tuple[str, ...] | None = None
    attributes: tuple["Parameter", ...] = ()


def _parameter_to_schema(parameter: Parameter) -> dict[str, Any]:
    base_type = parameter.type.removesuffix(_ARRAY_SUFFIX)
    is_array = parameter.type.endswith(_ARRAY_SUFFIX)

    if base_type == "object" and parameter.attributes:
        item: dict[str, Any] = parameters_to_json_schema(parameter.attributes)
    else:
        item = {"type": base_type}
        if parameter.enum and base_type == "string":
            item["enum"] = list(parameter.enum)

    if is_array:
        schema: dict[str, Any] = {"type": "array", "items": item}
    else:
        schema = dict(item)
    if parameter.description:
        schema["description"] = parameter.description
    return schema


def parameters_to_json_schema(parameters: Iterable[Parameter]) -> dict[str, Any]:
    """Build an object JSON schema from a list of parameters."""
    properties: dict[str, Any] = {}
    required: list[str] = []
    for parameter in parameters:
        properties[parameter.name] = _parameter_to_schema(parameter)
        if parameter.required:
            required.append(parameter.name)
    return {"type": "object", "properties": properties, "required": required}


class ActionInput(BaseModel):
    """An action as seen by a service adapter: name, description and JSON schema."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    name: str
    description: str = ""
    json_schema: str = Field("{}", description="JSON encoded parameter schema")


@dataclass(frozen=True)
class Action:
    """A server-side action the model may call.

    Attributes:
        name: Unique action name
        description: Description shown to the model
        parameters: JSON schema of the action arguments
        handler: Callable executing the action, sync or async
    """

    name: str
    description: str = ""
    parameters: dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}, "required": []}
    )
    handler: ActionHandler | None = None

    def to_input(self) -> ActionInput:
        return ActionInput(
            name=self.name,
            description=self.description,
            json_schema=json.dumps(self.parameters),
        )


def static_actions(actions: Iterable[Action]) -> ActionsProvider:
    """Wrap a fixed list of actions in a provider that ignores its properties."""
    frozen = list(actions)

    def provider(properties: Mapping[str, Any]) -> list[Action]:
        return list(frozen)

    return provider


def as_actions_provider(actions: ActionsProvider | Iterable[Action] | None) -> ActionsProvider:
    """Normalize a list, a provider or nothing into a provider."""
    if actions is None:
        return static_actions([])
    if callable(actions):
        return actions
    return static_actions(actions)


def merge_actions(*sources: Iterable[Action]) -> list[Action]:
    """Concatenate action sources in precedence order, keeping the first of each name."""
    merged: list[Action] = []
    seen: set[str] = set()
    for source in sources:
        for action in source:
            if action.name in seen:
                continue
            seen.add(action.name)
            merged.append(action)
    return merged


def flatten_actions_no_duplicates(actions_by_priority: Iterable[ActionInput]) -> list[ActionInput]:
    """Deduplicate action inputs by name, keeping the highest-priority one."""
    flattened: list[ActionInput] = []
    seen: set[str] = set()
    for action in actions_by_priority:
        if action.name not in seen:
            seen.add(action.name)
            flattened.append(action)
    return flattened
