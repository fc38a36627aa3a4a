"""Fixtures for runtime tests: fake backends and agents."""

import uuid
from collections.abc import AsyncIterator
from typing import Any
from unittest.mock import Mock

import pytest

from chat_runtime.platform.adapters.base import AdapterRequest, AdapterResponse
from chat_runtime.platform.runtime.events import (
    EventEmitter,
    RuntimeEvent,
    TextMessageContent,
    TextMessageEnd,
    TextMessageStart,
)


class FakeServiceAdapter:
    """A fake adapter recording its requests and producing canned events.

    This is a fake (not a mock) because it provides a simplified but working
    implementation of the adapter contract.
    """

    def __init__(self, events: list[RuntimeEvent] | None = None) -> None:
        self.events = events or []
        self.requests: list[AdapterRequest] = []

    async def process(self, request: AdapterRequest) -> AdapterResponse:
        self.requests.append(request)

        async def produce(emitter: EventEmitter) -> None:
            for event in self.events:
                await emitter.send(event)

        request.event_stream.stream(produce)
        return AdapterResponse(
            thread_id=request.thread_id or str(uuid.uuid4()),
            run_id=request.run_id,
        )


class FakeAgent:
    """An in-process agent resuming sessions with canned events."""

    def __init__(self, name: str, events: list[RuntimeEvent] | None = None) -> None:
        self.name = name
        self.description = f"{name} agent"
        self.events = events or []
        self.calls: list[tuple[str, dict[str, Any], str, str]] = []

    async def continue_session(
        self,
        agent_name: str,
        state: dict[str, Any],
        thread_id: str,
        node_name: str,
    ) -> AsyncIterator[RuntimeEvent]:
        self.calls.append((agent_name, state, thread_id, node_name))
        return self._events()

    async def _events(self) -> AsyncIterator[RuntimeEvent]:
        for event in self.events:
            yield event


@pytest.fixture
def hello_events() -> list[RuntimeEvent]:
    return [
        TextMessageStart(message_id="m-1"),
        TextMessageContent(content="Hello"),
        TextMessageEnd(),
    ]


@pytest.fixture
def adapter(hello_events: list[RuntimeEvent]) -> FakeServiceAdapter:
    return FakeServiceAdapter(hello_events)


@pytest.fixture
def logger() -> Mock:
    """A mock logger so tests can assert on reported warnings."""
    return Mock()


@pytest.fixture
def weather_agent(hello_events: list[RuntimeEvent]) -> FakeAgent:
    return FakeAgent("weather", hello_events)
