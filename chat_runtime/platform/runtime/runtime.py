"""Request orchestration.

:class:`ChatRuntime` is the entry point for a chat request. A request either
starts a new turn, which is dispatched to a service adapter together with the
merged actions, or continues an existing agent session, which is resumed on
the named agent. Both paths return as soon as event production has started;
the after-request hook runs in the background once the caller's final output
messages are known.
"""

import asyncio
import inspect
import json
import logging
import uuid
from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Self

from opentelemetry import trace
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from chat_runtime.platform.adapters.base import AdapterRequest, ForwardedParameters, ServiceAdapter
from chat_runtime.platform.observability.metrics import (
    after_request_failures,
    chain_resolution_failures,
    runtime_requests,
)
from chat_runtime.platform.remote.chains import RemoteChain
from chat_runtime.platform.remote.endpoints import RemoteEndpoint, discover_remote
from chat_runtime.platform.remote.protocol import Executable, SessionAgent
from chat_runtime.platform.runtime.actions import (
    Action,
    ActionInput,
    ActionsProvider,
    as_actions_provider,
    flatten_actions_no_duplicates,
    merge_actions,
)
from chat_runtime.platform.runtime.errors import (
    AdapterError,
    AgentNotFoundError,
    HookError,
    InvalidSessionError,
    NoAgentStateError,
    UnsupportedAgentError,
)
from chat_runtime.platform.runtime.events import DEFAULT_MAX_BUFFER, EventStream
from chat_runtime.platform.runtime.messages import (
    AgentStateMessage,
    Message,
    MessageInput,
    MessageKind,
    convert_inputs_to_messages,
)
from chat_runtime.platform.settings import Settings

tracer = trace.get_tracer(__name__)


class AgentSession(BaseModel):
    """Reference to a previously persisted agent run."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    thread_id: str
    agent_name: str
    node_name: str


@dataclass(frozen=True)
class BeforeRequestOptions:
    thread_id: str | None
    run_id: str | None
    input_messages: list[Message]
    properties: Mapping[str, Any]


@dataclass(frozen=True)
class AfterRequestOptions:
    thread_id: str
    run_id: str | None
    input_messages: list[Message]
    output_messages: list[Message]
    properties: Mapping[str, Any]


type BeforeRequestHandler = Callable[[BeforeRequestOptions], None | Awaitable[None]]
type AfterRequestHandler = Callable[[AfterRequestOptions], None | Awaitable[None]]


@dataclass(frozen=True)
class Middleware:
    """Lifecycle hooks, each either a plain function or a coroutine function.

    Attributes:
        on_before_request: Called before the backend is invoked; failures abort the request
        on_after_request: Called once output messages are known; failures are only logged
    """

    on_before_request: BeforeRequestHandler | None = None
    on_after_request: AfterRequestHandler | None = None


@dataclass(frozen=True)
class RuntimeRequest:
    """A chat request as received from the transport.

    Attributes:
        service_adapter: Backend used for new turns
        messages: Conversation in transport form
        actions: Client-declared actions
        output_messages: Resolves to the final output messages (feeds the after-request hook)
        agent_session: When set, the request continues this agent session
        thread_id: Conversation thread, generated when missing
        run_id: Run identifier
        forwarded_parameters: Model parameters forwarded to the adapter
        properties: Opaque request-scoped properties for hooks and action providers
    """

    service_adapter: ServiceAdapter
    messages: list[MessageInput]
    actions: list[ActionInput] = field(default_factory=list)
    output_messages: Awaitable[list[Message]] | None = None
    agent_session: AgentSession | None = None
    thread_id: str | None = None
    run_id: str | None = None
    forwarded_parameters: ForwardedParameters | None = None
    properties: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RuntimeResponse:
    thread_id: str
    run_id: str | None
    event_stream: EventStream
    actions: list[Action]


async def _call_hook(handler: Callable[[Any], Any], options: Any) -> None:
    result = handler(options)
    if inspect.isawaitable(result):
        await result


class ChatRuntime:
    """Mediates between chat requests and model backends."""

    def __init__(
        self,
        actions: ActionsProvider | Iterable[Action] | None = None,
        chains: Sequence[RemoteChain] = (),
        remote_endpoints: Sequence[RemoteEndpoint] = (),
        agents: Sequence[SessionAgent] = (),
        middleware: Middleware | None = None,
        event_buffer_size: int = DEFAULT_MAX_BUFFER,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the runtime.

        Args:
            actions: Server-side actions, as a list or as a provider of the request properties
            chains: Remote chains exposed as actions
            remote_endpoints: Endpoints providing remote actions and agents
            agents: In-process agents able to continue sessions
            middleware: Lifecycle hooks
            event_buffer_size: Undelivered events kept per event stream
            logger: Observer for recoverable failures (defaults to the module logger)
        """
        self._actions = as_actions_provider(actions)
        self._chains = list(chains)
        self._remote_endpoints = list(remote_endpoints)
        self._agents = list(agents)
        self._middleware = middleware or Middleware()
        self._event_buffer_size = event_buffer_size
        self._logger = logger or logging.getLogger(__name__)
        self._chain_tasks: list[asyncio.Task[Action]] | None = None
        self._background_tasks: set[asyncio.Task[None]] = set()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        actions: ActionsProvider | Iterable[Action] | None = None,
        agents: Sequence[SessionAgent] = (),
        middleware: Middleware | None = None,
    ) -> Self:
        """Create a runtime with the chains and remote endpoints configured in settings."""
        return cls(
            actions=actions,
            chains=[RemoteChain.from_settings(chain) for chain in settings.remote_chains],
            remote_endpoints=[
                RemoteEndpoint.from_settings(endpoint) for endpoint in settings.remote_endpoints
            ],
            agents=agents,
            middleware=middleware,
            event_buffer_size=settings.runtime.event_buffer_size,
        )

    async def process(self, request: RuntimeRequest) -> RuntimeResponse:
        """Process a chat request.

        Returns:
            The response handle; events are produced in the background

        Raises:
            NoAgentStateError: Session continuation without agent state
            InvalidSessionError: Agent state that cannot be decoded
            AgentNotFoundError: Session continuation for an unknown agent
            UnsupportedAgentError: Agent that cannot continue sessions
            HookError: The before-request hook failed
            AdapterError: The backend call failed
        """
        branch = "agent_session" if request.agent_session else "turn"
        with tracer.start_as_current_span("chat_runtime.process") as span:
            span.set_attribute("chat_runtime.branch", branch)
            try:
                if request.agent_session is not None:
                    response = await self.process_agent_request(request)
                else:
                    response = await self._process_turn(request)
            except Exception:
                runtime_requests.labels(branch=branch, outcome="error").inc()
                raise
            runtime_requests.labels(branch=branch, outcome="ok").inc()
            span.set_attribute("chat_runtime.thread_id", response.thread_id)
            return response

    async def _process_turn(self, request: RuntimeRequest) -> RuntimeResponse:
        # agent state only matters when continuing a session
        input_messages = convert_inputs_to_messages(
            [message for message in request.messages if message.agent_state_message is None]
        )

        configured_actions = self._actions(request.properties)
        chain_actions = await self._resolve_chains()
        remote = await discover_remote(self._remote_endpoints, request.properties, self._logger)

        actions = merge_actions(configured_actions, chain_actions, remote.actions)
        action_inputs = flatten_actions_no_duplicates(
            [*(action.to_input() for action in actions), *request.actions]
        )

        await self._run_before_request(
            BeforeRequestOptions(
                thread_id=request.thread_id,
                run_id=request.run_id,
                input_messages=input_messages,
                properties=request.properties,
            )
        )

        event_stream = EventStream(max_buffer=self._event_buffer_size, logger=self._logger)
        try:
            result = await request.service_adapter.process(
                AdapterRequest(
                    messages=input_messages,
                    actions=action_inputs,
                    event_stream=event_stream,
                    thread_id=request.thread_id,
                    run_id=request.run_id,
                    forwarded_parameters=request.forwarded_parameters,
                )
            )
        except Exception as e:
            self._logger.error("Error getting response: %s", e)
            if isinstance(e, AdapterError):
                raise
            raise AdapterError(str(e), adapter=type(request.service_adapter).__name__) from e

        thread_id = result.thread_id or request.thread_id or str(uuid.uuid4())
        self._schedule_after_request(request, thread_id, result.run_id, input_messages)

        return RuntimeResponse(
            thread_id=thread_id,
            run_id=result.run_id,
            event_stream=event_stream,
            actions=actions,
        )

    async def process_agent_request(self, request: RuntimeRequest) -> RuntimeResponse:
        """Continue the agent session referenced by ``request.agent_session``."""
        session = request.agent_session
        assert session is not None

        messages = convert_inputs_to_messages(request.messages)
        agent_states = [
            message for message in messages if message.kind == MessageKind.AGENT_STATE
        ]
        if not agent_states:
            raise NoAgentStateError(session.agent_name)

        # the most recent state wins
        latest: AgentStateMessage = agent_states[-1]
        try:
            state = json.loads(latest.state)
        except json.JSONDecodeError as e:
            raise InvalidSessionError(str(e), thread_id=session.thread_id) from e
        if not isinstance(state, dict):
            raise InvalidSessionError(
                f"agent state must be a JSON object, got {type(state).__name__}",
                thread_id=session.thread_id,
            )

        executables = await self._discover_executables(request.properties)
        agent = next((item for item in executables if item.name == session.agent_name), None)
        if agent is None:
            raise AgentNotFoundError(session.agent_name)
        if not isinstance(agent, SessionAgent):
            raise UnsupportedAgentError(session.agent_name)

        await self._run_before_request(
            BeforeRequestOptions(
                thread_id=session.thread_id,
                run_id=None,
                input_messages=messages,
                properties=request.properties,
            )
        )

        event_stream = EventStream(max_buffer=self._event_buffer_size, logger=self._logger)
        try:
            source = await agent.continue_session(
                session.agent_name,
                state,
                session.thread_id,
                session.node_name,
            )
        except Exception as e:
            self._logger.error("Error getting response: %s", e)
            raise AdapterError(str(e), adapter=session.agent_name) from e
        event_stream.forward(source)

        thread_id = request.thread_id or session.thread_id or str(uuid.uuid4())
        self._schedule_after_request(request, thread_id, None, messages)

        return RuntimeResponse(
            thread_id=thread_id,
            run_id=None,
            event_stream=event_stream,
            actions=[],
        )

    async def _resolve_chains(self) -> list[Action]:
        """Resolve the configured chains, dropping the ones that fail.

        Each chain is resolved once per runtime; later requests reuse the outcome.
        """
        if self._chain_tasks is None:
            self._chain_tasks = [asyncio.create_task(chain.to_action()) for chain in self._chains]

        actions: list[Action] = []
        for chain, task in zip(self._chains, self._chain_tasks):
            try:
                actions.append(await asyncio.shield(task))
            except Exception as e:
                chain_resolution_failures.inc()
                self._logger.warning("Error loading chain %s: %s", chain.name, e)
        return actions

    async def _discover_executables(self, properties: Mapping[str, Any]) -> list[Executable]:
        remote = await discover_remote(self._remote_endpoints, properties, self._logger)
        return [*self._agents, *remote.agents, *remote.actions]

    async def _run_before_request(self, options: BeforeRequestOptions) -> None:
        handler = self._middleware.on_before_request
        if handler is None:
            return
        try:
            await _call_hook(handler, options)
        except Exception as e:
            raise HookError("on_before_request", str(e)) from e

    def _schedule_after_request(
        self,
        request: RuntimeRequest,
        thread_id: str,
        run_id: str | None,
        input_messages: list[Message],
    ) -> None:
        handler = self._middleware.on_after_request
        if handler is None or request.output_messages is None:
            return

        task = asyncio.create_task(
            self._run_after_request(
                handler,
                request.output_messages,
                thread_id,
                run_id,
                input_messages,
                request.properties,
            )
        )
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def _run_after_request(
        self,
        handler: AfterRequestHandler,
        output_messages: Awaitable[list[Message]],
        thread_id: str,
        run_id: str | None,
        input_messages: list[Message],
        properties: Mapping[str, Any],
    ) -> None:
        try:
            await _call_hook(
                handler,
                AfterRequestOptions(
                    thread_id=thread_id,
                    run_id=run_id,
                    input_messages=input_messages,
                    output_messages=await output_messages,
                    properties=properties,
                ),
            )
        except Exception as e:
            after_request_failures.inc()
            self._logger.warning("After-request hook failed: %s", e)

    async def wait_background_tasks(self, timeout: float | None = None) -> None:
        """Wait for pending after-request hooks (used on shutdown and in tests).

        Hooks still pending after ``timeout`` seconds are cancelled.
        """
        if not self._background_tasks:
            return
        _, pending = await asyncio.wait(set(self._background_tasks), timeout=timeout)
        if pending:
            after_request_failures.inc(len(pending))
            self._logger.warning("Cancelling %d pending after-request hooks", len(pending))
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
