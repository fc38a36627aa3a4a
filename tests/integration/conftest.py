"""Integration test fixtures.

This module provides shared fixtures for integration tests including:
- Route/handler tests with a stubbed service adapter (shallow app setup)
- A runtime with in-process agents and lifecycle hooks
"""

import uuid
from collections.abc import AsyncIterator, Generator
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from chat_runtime.platform.adapters.base import AdapterRequest, AdapterResponse
from chat_runtime.platform.runtime.events import (
    ActionExecutionArgs,
    ActionExecutionEnd,
    ActionExecutionStart,
    EventEmitter,
    RuntimeEvent,
    TextMessageContent,
    TextMessageEnd,
    TextMessageStart,
)
from chat_runtime.platform.runtime.runtime import AfterRequestOptions, ChatRuntime, Middleware
from chat_runtime.platform.server.health import HealthCheck
from chat_runtime.platform.server.routes import root as root_router

# =============================================================================
# Backend Fixtures
# =============================================================================


class StubServiceAdapter:
    """A stub adapter producing canned events and recording requests."""

    def __init__(self, events: list[RuntimeEvent]) -> None:
        self.events = events
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


class StubAgent:
    """An in-process agent resuming sessions with canned events."""

    def __init__(self, name: str, events: list[RuntimeEvent]) -> None:
        self.name = name
        self.description = f"{name} agent"
        self.events = events
        self.states: list[dict[str, Any]] = []

    async def continue_session(
        self,
        agent_name: str,
        state: dict[str, Any],
        thread_id: str,
        node_name: str,
    ) -> AsyncIterator[RuntimeEvent]:
        self.states.append(state)
        return self._events()

    async def _events(self) -> AsyncIterator[RuntimeEvent]:
        for event in self.events:
            yield event


@pytest.fixture
def stub_events() -> list[RuntimeEvent]:
    """Canned backend answer: a text message followed by an action call."""
    return [
        TextMessageStart(message_id="m-1"),
        TextMessageContent(content="Let me "),
        TextMessageContent(content="check."),
        TextMessageEnd(),
        ActionExecutionStart(action_execution_id="call-1", action_name="lookup_order"),
        ActionExecutionArgs(args='{"id": '),
        ActionExecutionArgs(args='"o-1"}'),
        ActionExecutionEnd(),
    ]


@pytest.fixture
def stub_adapter(stub_events: list[RuntimeEvent]) -> StubServiceAdapter:
    return StubServiceAdapter(stub_events)


@pytest.fixture
def stub_agent() -> StubAgent:
    return StubAgent(
        "weather",
        [TextMessageStart(message_id="w-1"), TextMessageContent(content="Sunny"), TextMessageEnd()],
    )


@pytest.fixture
def after_requests() -> list[AfterRequestOptions]:
    """Records every after-request hook invocation."""
    return []


@pytest.fixture
def runtime(stub_agent: StubAgent, after_requests: list[AfterRequestOptions]) -> ChatRuntime:
    return ChatRuntime(
        agents=[stub_agent],
        middleware=Middleware(on_after_request=after_requests.append),
    )


# =============================================================================
# FastAPI App Fixtures (Shallow - no middleware, minimal lifespan)
# =============================================================================


@pytest.fixture
def test_app(runtime: ChatRuntime, stub_adapter: StubServiceAdapter) -> FastAPI:
    """Create a minimal test FastAPI app for integration tests.

    This is intentionally SHALLOW - no middleware, no full lifespan.
    Tests route handlers and their interaction with dependencies.
    """
    app = FastAPI()

    # Register the runtime and its default adapter directly in app.state
    app.state.runtime = runtime
    app.state.service_adapter = stub_adapter

    app.include_router(root_router)

    return app


@pytest.fixture
def client(test_app: FastAPI) -> Generator[TestClient]:
    """Create a test client for the test app.

    The context manager keeps one event loop alive across requests so
    background after-request hooks can finish.
    """
    with TestClient(test_app) as test_client:
        yield test_client


@pytest.fixture
def client_with_health_enabled(test_app: FastAPI) -> Generator[TestClient]:
    """Create a test client with health checks enabled."""
    HealthCheck.enable()
    yield TestClient(test_app)
    HealthCheck.disable()


@pytest.fixture
def client_with_health_disabled(test_app: FastAPI) -> Generator[TestClient]:
    """Create a test client with health checks disabled."""
    HealthCheck.disable()
    yield TestClient(test_app)
