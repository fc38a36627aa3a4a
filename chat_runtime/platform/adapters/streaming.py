"""Normalization of backend deltas into well-nested runtime events.

Backends stream text deltas and tool-call deltas interleaved and unlabeled.
:class:`StreamNormalizer` turns them into explicit spans: a text message or an
action execution is always closed before the next one starts, and the stream
ends with every span closed followed by a single ``Complete``.

The only boundary signal is a tool-call delta carrying a call id different
from the currently open call, so the normalizer keeps the current mode and
call id between chunks.
"""

import logging
from collections.abc import AsyncIterable
from dataclasses import dataclass
from enum import StrEnum

from chat_runtime.platform.runtime.events import EventEmitter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolCallDelta:
    """Incremental piece of a tool call.

    Attributes:
        id: Call id, present on the chunk that opens the call (may be repeated)
        name: Function name, present when the call opens
        arguments: Fragment of the JSON encoded arguments
    """

    id: str | None = None
    name: str | None = None
    arguments: str | None = None


@dataclass(frozen=True)
class CompletionChunk:
    """Backend independent view of one streamed chunk."""

    id: str
    content: str | None = None
    tool_call: ToolCallDelta | None = None


class StreamMode(StrEnum):
    NONE = "none"
    MESSAGE = "message"
    FUNCTION = "function"


class StreamNormalizer:
    """Mode state machine emitting start/content/end events for each chunk."""

    def __init__(self, emitter: EventEmitter) -> None:
        self._emitter = emitter
        self.mode = StreamMode.NONE
        self._call_id: str | None = None

    def _starts_new_call(self, chunk: CompletionChunk) -> bool:
        tool_call = chunk.tool_call
        return tool_call is not None and bool(tool_call.id) and tool_call.id != self._call_id

    async def feed(self, chunk: CompletionChunk) -> None:
        new_call = self._starts_new_call(chunk)

        # close the open span when the chunk switches kind
        if self.mode == StreamMode.MESSAGE and new_call:
            await self._emitter.send_text_message_end()
            self.mode = StreamMode.NONE
        elif self.mode == StreamMode.FUNCTION and (chunk.tool_call is None or new_call):
            await self._emitter.send_action_execution_end()
            self.mode = StreamMode.NONE
            self._call_id = None

        if self.mode == StreamMode.NONE:
            if new_call:
                assert chunk.tool_call is not None
                self._call_id = chunk.tool_call.id
                self.mode = StreamMode.FUNCTION
                await self._emitter.send_action_execution_start(
                    chunk.tool_call.id or "", chunk.tool_call.name or ""
                )
            elif chunk.content:
                self.mode = StreamMode.MESSAGE
                await self._emitter.send_text_message_start(chunk.id)

        if self.mode == StreamMode.MESSAGE and chunk.content:
            await self._emitter.send_text_message_content(chunk.content)
        elif self.mode == StreamMode.FUNCTION and chunk.tool_call and chunk.tool_call.arguments:
            await self._emitter.send_action_execution_args(chunk.tool_call.arguments)

    async def close(self) -> None:
        """Close the open span, if any."""
        if self.mode == StreamMode.MESSAGE:
            await self._emitter.send_text_message_end()
        elif self.mode == StreamMode.FUNCTION:
            await self._emitter.send_action_execution_end()
        self.mode = StreamMode.NONE
        self._call_id = None


async def normalize_stream(
    chunks: AsyncIterable[CompletionChunk],
    emitter: EventEmitter,
    logger: logging.Logger = logger,
) -> None:
    """Drive a :class:`StreamNormalizer` over ``chunks`` and complete the stream.

    An error raised by the backend stream is logged; the open span is still
    closed and the stream completed so consumers are never left waiting.
    """
    normalizer = StreamNormalizer(emitter)
    try:
        async for chunk in chunks:
            await normalizer.feed(chunk)
    except Exception as e:
        logger.warning("Error while streaming backend response: %s", e)
    await normalizer.close()
    await emitter.complete()
