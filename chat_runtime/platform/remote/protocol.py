"""Agent executable protocols.

Executables are discovered by name. Only executables implementing
:class:`SessionAgent` can continue an existing agent session.
"""

from collections.abc import AsyncIterator
from typing import Any, Protocol, runtime_checkable

from chat_runtime.platform.runtime.events import RuntimeEvent


class Executable(Protocol):
    """Anything discoverable by name: an action or an agent."""

    @property
    def name(self) -> str: ...

    @property
    def description(self) -> str: ...


@runtime_checkable
class SessionAgent(Protocol):
    """An agent able to resume a previously persisted run."""

    @property
    def name(self) -> str: ...

    async def continue_session(
        self,
        agent_name: str,
        state: dict[str, Any],
        thread_id: str,
        node_name: str,
    ) -> AsyncIterator[RuntimeEvent]:
        """Resume the agent from ``state`` and return its event stream.

        Args:
            agent_name: Name of the agent to resume
            state: Decoded agent state from the most recent agent state message
            thread_id: Thread the run belongs to
            node_name: Graph node the agent stopped at

        Returns:
            Async iterator of runtime events, without the final ``Complete``
        """
        ...
