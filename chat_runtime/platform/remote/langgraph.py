"""In-process LangGraph agents.

This module provides LangGraph-specific implementations including:
- LangGraphEventParser: Converts LangGraph state updates to runtime events
- LangGraphAgentAction: A compiled graph that can resume agent sessions
"""

import json
import uuid
from collections.abc import AsyncIterator
from typing import Any

from langchain_core.messages import AIMessage, BaseMessage
from langgraph.graph.state import CompiledStateGraph

from chat_runtime.platform.runtime.events import (
    ActionExecutionArgs,
    ActionExecutionEnd,
    ActionExecutionStart,
    RuntimeEvent,
    TextMessageContent,
    TextMessageEnd,
    TextMessageStart,
)


class LangGraphEventParser:
    """Parser that converts LangGraph stream updates to runtime events.

    Each update is keyed by node name (``stream_mode="updates"``). The last AI
    message of every node update is emitted as closed spans: one text message
    for its content, then one action execution per tool call.
    """

    def to_runtime_events(self, update: dict[str, Any]) -> list[RuntimeEvent]:
        """Convert one LangGraph update to runtime events.

        Args:
            update: ``{'node_name': {'messages': [...], ...}}``

        Returns:
            Well-nested events, empty when the update carries no AI message
        """
        events: list[RuntimeEvent] = []
        for node_data in update.values():
            if not isinstance(node_data, dict):
                continue

            messages = node_data.get("messages", [])
            if not messages:
                continue

            last_msg = messages[-1]
            if not isinstance(last_msg, AIMessage):
                continue

            content = self._extract_content(last_msg)
            if content:
                events += [
                    TextMessageStart(message_id=last_msg.id or str(uuid.uuid4())),
                    TextMessageContent(content=content),
                    TextMessageEnd(),
                ]
            for tool_call in last_msg.tool_calls:
                events += [
                    ActionExecutionStart(
                        action_execution_id=tool_call.get("id") or str(uuid.uuid4()),
                        action_name=tool_call["name"],
                    ),
                    ActionExecutionArgs(args=json.dumps(tool_call.get("args", {}))),
                    ActionExecutionEnd(),
                ]
        return events

    @staticmethod
    def _extract_content(msg: BaseMessage) -> str:
        """Extract string content from a message.

        Args:
            msg: LangChain message

        Returns:
            Message content as string
        """
        content = msg.content
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            text_parts = [p.get("text", "") if isinstance(p, dict) else str(p) for p in content]
            return " ".join(text_parts)
        return str(content)


class LangGraphAgentAction:
    """A compiled LangGraph graph exposed as an agent.

    The graph must be compiled with a checkpointer: resuming a session writes
    the client's state into the thread as if produced by ``node_name``, then
    streams the graph from that point.
    """

    def __init__(
        self,
        name: str,
        description: str,
        graph: CompiledStateGraph,
        event_parser: LangGraphEventParser | None = None,
    ) -> None:
        """Initialize the agent.

        Args:
            name: Agent name used for discovery
            description: Agent description
            graph: Compiled LangGraph ready for execution
            event_parser: Optional custom event parser
        """
        self.name = name
        self.description = description
        self._graph = graph
        self._event_parser = event_parser or LangGraphEventParser()

    def __repr__(self) -> str:
        return f"LangGraphAgentAction(name={self.name!r})"

    async def continue_session(
        self,
        agent_name: str,
        state: dict[str, Any],
        thread_id: str,
        node_name: str,
    ) -> AsyncIterator[RuntimeEvent]:
        config = {"configurable": {"thread_id": thread_id}}
        await self._graph.aupdate_state(config, state, as_node=node_name or None)
        return self._stream(config)

    async def _stream(self, config: dict[str, Any]) -> AsyncIterator[RuntimeEvent]:
        async for update in self._graph.astream(None, config=config, stream_mode="updates"):
            for event in self._event_parser.to_runtime_events(update):
                yield event
