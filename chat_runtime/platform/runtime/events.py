"""Normalized runtime events and the event stream that carries them.

An :class:`EventStream` bridges a producer (a service adapter or a forwarded
agent stream) running as its own asyncio task and a consumer (the transport)
reading events as they are produced. The stream delivers events in order
through a bounded queue and signals completion exactly once. It does not
validate the nesting of start/end events; producers are responsible for that.
"""

import asyncio
import logging
from collections.abc import AsyncIterable, AsyncIterator, Awaitable, Callable
from dataclasses import asdict, dataclass, field
from enum import StrEnum
from typing import Any

from pydantic.alias_generators import to_camel


DEFAULT_MAX_BUFFER = 100


class RuntimeEventType(StrEnum):
    TEXT_MESSAGE_START = "TextMessageStart"
    TEXT_MESSAGE_CONTENT = "TextMessageContent"
    TEXT_MESSAGE_END = "TextMessageEnd"
    ACTION_EXECUTION_START = "ActionExecutionStart"
    ACTION_EXECUTION_ARGS = "ActionExecutionArgs"
    ACTION_EXECUTION_END = "ActionExecutionEnd"
    COMPLETE = "Complete"


@dataclass(frozen=True)
class _Event:
    def to_dict(self) -> dict[str, Any]:
        """Serialize with camelCase keys and a ``type`` discriminator first."""
        data = asdict(self)
        event_type = data.pop("type")
        return {"type": str(event_type)} | {to_camel(key): value for key, value in data.items()}


@dataclass(frozen=True)
class TextMessageStart(_Event):
    message_id: str
    type: RuntimeEventType = field(default=RuntimeEventType.TEXT_MESSAGE_START, init=False)


@dataclass(frozen=True)
class TextMessageContent(_Event):
    content: str
    type: RuntimeEventType = field(default=RuntimeEventType.TEXT_MESSAGE_CONTENT, init=False)


@dataclass(frozen=True)
class TextMessageEnd(_Event):
    type: RuntimeEventType = field(default=RuntimeEventType.TEXT_MESSAGE_END, init=False)


@dataclass(frozen=True)
class ActionExecutionStart(_Event):
    action_execution_id: str
    action_name: str
    type: RuntimeEventType = field(default=RuntimeEventType.ACTION_EXECUTION_START, init=False)


@dataclass(frozen=True)
class ActionExecutionArgs(_Event):
    args: str
    type: RuntimeEventType = field(default=RuntimeEventType.ACTION_EXECUTION_ARGS, init=False)


@dataclass(frozen=True)
class ActionExecutionEnd(_Event):
    type: RuntimeEventType = field(default=RuntimeEventType.ACTION_EXECUTION_END, init=False)


@dataclass(frozen=True)
class Complete(_Event):
    type: RuntimeEventType = field(default=RuntimeEventType.COMPLETE, init=False)


type RuntimeEvent = (
    TextMessageStart
    | TextMessageContent
    | TextMessageEnd
    | ActionExecutionStart
    | ActionExecutionArgs
    | ActionExecutionEnd
    | Complete
)


def parse_runtime_event(data: dict[str, Any]) -> RuntimeEvent:
    """Build a runtime event from its serialized form.

    Raises:
        ValueError: If the event type is unknown or a field is missing
    """
    try:
        match data.get("type"):
            case RuntimeEventType.TEXT_MESSAGE_START:
                return TextMessageStart(message_id=data["messageId"])
            case RuntimeEventType.TEXT_MESSAGE_CONTENT:
                return TextMessageContent(content=data["content"])
            case RuntimeEventType.TEXT_MESSAGE_END:
                return TextMessageEnd()
            case RuntimeEventType.ACTION_EXECUTION_START:
                return ActionExecutionStart(
                    action_execution_id=data["actionExecutionId"],
                    action_name=data["actionName"],
                )
            case RuntimeEventType.ACTION_EXECUTION_ARGS:
                return ActionExecutionArgs(args=data["args"])
            case RuntimeEventType.ACTION_EXECUTION_END:
                return ActionExecutionEnd()
            case RuntimeEventType.COMPLETE:
                return Complete()
            case other:
                raise ValueError(f"unknown runtime event type: {other!r}")
    except KeyError as e:
        raise ValueError(f"runtime event {data.get('type')!r} is missing {e}") from e


class EventEmitter:
    """Write side of an :class:`EventStream`, handed to producers."""

    def __init__(self, stream: "EventStream") -> None:
        self._stream = stream

    async def send(self, event: RuntimeEvent) -> None:
        if isinstance(event, Complete):
            await self.complete()
            return
        await self._stream._publish(event)

    async def send_text_message_start(self, message_id: str) -> None:
        await self.send(TextMessageStart(message_id=message_id))

    async def send_text_message_content(self, content: str) -> None:
        await self.send(TextMessageContent(content=content))

    async def send_text_message_end(self) -> None:
        await self.send(TextMessageEnd())

    async def send_action_execution_start(self, action_execution_id: str, action_name: str) -> None:
        await self.send(
            ActionExecutionStart(action_execution_id=action_execution_id, action_name=action_name)
        )

    async def send_action_execution_args(self, args: str) -> None:
        await self.send(ActionExecutionArgs(args=args))

    async def send_action_execution_end(self) -> None:
        await self.send(ActionExecutionEnd())

    async def complete(self) -> None:
        await self._stream._complete()


type Producer = Callable[[EventEmitter], Awaitable[None]]


class EventStream:
    """Single-use, ordered stream of runtime events.

    Production runs as an independent task started by :meth:`stream` or
    :meth:`forward`. Consumers iterate the stream (``async for event in
    stream``) and receive events as soon as they are published; iteration
    ends after the ``Complete`` event.
    """

    def __init__(
        self,
        max_buffer: int = DEFAULT_MAX_BUFFER,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the stream.

        Args:
            max_buffer: Number of undelivered events held before the producer waits
            logger: Observer for production failures (defaults to the module logger)
        """
        self._queue: asyncio.Queue[RuntimeEvent] = asyncio.Queue(maxsize=max_buffer)
        self._logger = logger or logging.getLogger(__name__)
        self._task: asyncio.Task[None] | None = None
        self._completed = False
        self._closed = False

    @property
    def is_complete(self) -> bool:
        return self._completed

    @property
    def is_closed(self) -> bool:
        return self._closed

    def stream(self, producer: Producer) -> asyncio.Task[None]:
        """Run the production logic as a background task.

        The stream is completed when the producer finishes, whether or not it
        called ``complete()`` itself, and also when it raises.

        Raises:
            RuntimeError: If the stream was already started
        """
        if self._task is not None:
            raise RuntimeError("event stream has already been started")
        self._task = asyncio.create_task(self._run(producer))
        return self._task

    def forward(self, source: AsyncIterable[RuntimeEvent]) -> asyncio.Task[None]:
        """Forward every event of ``source`` into this stream, then complete it.

        Errors raised by the source are logged and end the forwarding. Closing
        the stream cancels the forwarding task, which stops pulling from the
        source.
        """

        async def producer(emitter: EventEmitter) -> None:
            try:
                async for event in source:
                    await emitter.send(event)
                    if self._completed:
                        break
            except Exception as e:
                self._logger.warning("Error in forwarded event stream: %s", e)
            finally:
                aclose = getattr(source, "aclose", None)
                if aclose is not None:
                    await aclose()
            await emitter.complete()

        return self.stream(producer)

    async def _run(self, producer: Producer) -> None:
        try:
            await producer(EventEmitter(self))
        except Exception:
            self._logger.exception("Event stream producer failed")
        await self._complete()

    async def _publish(self, event: RuntimeEvent) -> None:
        if self._closed or self._completed:
            return
        await self._queue.put(event)

    async def _complete(self) -> None:
        if self._completed:
            return
        self._completed = True
        if not self._closed:
            await self._queue.put(Complete())

    async def subscribe(self) -> AsyncIterator[RuntimeEvent]:
        """Yield events in production order, ending with ``Complete``."""
        while not self._closed:
            event = await self._queue.get()
            yield event
            if isinstance(event, Complete):
                return

    def __aiter__(self) -> AsyncIterator[RuntimeEvent]:
        return self.subscribe()

    async def collect(self) -> list[RuntimeEvent]:
        """Consume the whole stream and return its events."""
        return [event async for event in self.subscribe()]

    def cancel(self) -> None:
        """Discard the stream without waiting for production to stop."""
        self._closed = True
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def aclose(self) -> None:
        """Discard the stream: stop delivering events and cancel production."""
        self.cancel()
        task = self._task
        if task is not None and not task.done():
            try:
                await task
            except asyncio.CancelledError:
                pass
