"""Remote endpoints exposing actions and agents over HTTP.

An endpoint answers ``POST {url}/info`` with the actions and agents it
provides::

    {"actions": [{"name": ..., "description": ..., "parameters": {...}}],
     "agents": [{"name": ..., "description": ...}]}

Actions are executed with ``POST {url}/actions/execute``. Agents resume a
session with ``POST {url}/agents/execute``, which answers with one JSON
encoded runtime event per line.
"""

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Self

import httpx

from chat_runtime.platform.constants import USER_AGENT
from chat_runtime.platform.runtime.actions import Action
from chat_runtime.platform.runtime.events import Complete, RuntimeEvent, parse_runtime_event
from chat_runtime.platform.settings import RemoteEndpointSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RemoteInfo:
    """Actions and agents discovered on one or more endpoints."""

    actions: list[Action] = field(default_factory=list)
    agents: list["RemoteAgentAction"] = field(default_factory=list)


class RemoteEndpoint:
    """Client for a single remote endpoint."""

    def __init__(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout_seconds: float = 60.0,
    ) -> None:
        self.url = url.rstrip("/")
        self._headers = (headers or {}) | {"user-agent": USER_AGENT}
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_settings(cls, settings: RemoteEndpointSettings) -> Self:
        return cls(
            url=settings.url,
            headers=settings.headers,
            timeout_seconds=settings.timeout_seconds,
        )

    def __repr__(self) -> str:
        """Obfuscate headers, they usually carry credentials."""
        return f"RemoteEndpoint(url={self.url!r}, headers=<obfuscated>)"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(headers=self._headers, timeout=self.timeout_seconds)

    async def fetch_info(self, properties: Mapping[str, Any]) -> RemoteInfo:
        """Discover the endpoint's actions and agents.

        Raises:
            httpx.HTTPError: If the endpoint is unreachable or answers with an error
        """
        async with self._client() as client:
            response = await client.post(f"{self.url}/info", json={"properties": dict(properties)})
            response.raise_for_status()
            payload = response.json()

        actions = [
            Action(
                name=item["name"],
                description=item.get("description", ""),
                parameters=item.get("parameters") or {"type": "object", "properties": {}},
                handler=self._action_handler(item["name"], properties),
            )
            for item in payload.get("actions", [])
        ]
        agents = [
            RemoteAgentAction(
                name=item["name"],
                description=item.get("description", ""),
                endpoint=self,
                properties=properties,
            )
            for item in payload.get("agents", [])
        ]
        return RemoteInfo(actions=actions, agents=agents)

    def _action_handler(self, name: str, properties: Mapping[str, Any]):
        async def handler(arguments: dict[str, Any]) -> Any:
            return await self.execute_action(name, arguments, properties)

        return handler

    async def execute_action(
        self,
        name: str,
        arguments: dict[str, Any],
        properties: Mapping[str, Any],
    ) -> Any:
        async with self._client() as client:
            response = await client.post(
                f"{self.url}/actions/execute",
                json={"name": name, "arguments": arguments, "properties": dict(properties)},
            )
            response.raise_for_status()
            return response.json().get("result")

    async def execute_agent(self, payload: dict[str, Any]) -> AsyncIterator[RuntimeEvent]:
        """Start an agent run and return its events.

        The request is sent before returning so connection and HTTP errors are
        raised to the caller; the returned iterator owns the response.

        Raises:
            httpx.HTTPError: If the agent run cannot be started
        """
        client = self._client()
        try:
            request = client.build_request("POST", f"{self.url}/agents/execute", json=payload)
            response = await client.send(request, stream=True)
            response.raise_for_status()
        except BaseException:
            await client.aclose()
            raise

        async def events() -> AsyncIterator[RuntimeEvent]:
            try:
                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    event = parse_runtime_event(json.loads(line))
                    if isinstance(event, Complete):
                        return
                    yield event
            finally:
                await response.aclose()
                await client.aclose()

        return events()


class RemoteAgentAction:
    """An agent hosted on a remote endpoint that can resume sessions."""

    def __init__(
        self,
        name: str,
        description: str,
        endpoint: RemoteEndpoint,
        properties: Mapping[str, Any] | None = None,
    ) -> None:
        self.name = name
        self.description = description
        self._endpoint = endpoint
        self._properties = dict(properties or {})

    def __repr__(self) -> str:
        return f"RemoteAgentAction(name={self.name!r}, endpoint={self._endpoint.url!r})"

    async def continue_session(
        self,
        agent_name: str,
        state: dict[str, Any],
        thread_id: str,
        node_name: str,
    ) -> AsyncIterator[RuntimeEvent]:
        return await self._endpoint.execute_agent(
            {
                "name": agent_name,
                "threadId": thread_id,
                "nodeName": node_name,
                "state": state,
                "properties": self._properties,
            }
        )


async def discover_remote(
    endpoints: Sequence[RemoteEndpoint],
    properties: Mapping[str, Any],
    logger: logging.Logger = logger,
) -> RemoteInfo:
    """Discover actions and agents on all endpoints concurrently.

    Endpoints that fail are logged and skipped. Results keep the endpoints'
    configuration order.
    """
    if not endpoints:
        return RemoteInfo()

    async def fetch(endpoint: RemoteEndpoint) -> RemoteInfo | Exception:
        try:
            return await endpoint.fetch_info(properties)
        except Exception as e:
            return e

    async with asyncio.TaskGroup() as tg:
        tasks = [tg.create_task(fetch(endpoint)) for endpoint in endpoints]

    actions: list[Action] = []
    agents: list[RemoteAgentAction] = []
    for endpoint, task in zip(endpoints, tasks):
        result = task.result()
        if isinstance(result, Exception):
            logger.warning(
                "Remote endpoint unavailable at %s: %s. Continuing without it.",
                endpoint.url,
                result,
            )
            continue
        actions.extend(result.actions)
        agents.extend(result.agents)
    return RemoteInfo(actions=actions, agents=agents)
