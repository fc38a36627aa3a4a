"""Unit tests for runtime events and the event stream."""

import asyncio
from unittest.mock import Mock

import pytest

from chat_runtime.platform.runtime.events import (
    ActionExecutionArgs,
    ActionExecutionEnd,
    ActionExecutionStart,
    Complete,
    EventEmitter,
    EventStream,
    TextMessageContent,
    TextMessageEnd,
    TextMessageStart,
    parse_runtime_event,
)


class TestEventSerialization:
    """Tests for to_dict and parse_runtime_event."""

    def test_to_dict_uses_camel_case(self):
        event = ActionExecutionStart(action_execution_id="call-1", action_name="search")

        assert event.to_dict() == {
            "type": "ActionExecutionStart",
            "actionExecutionId": "call-1",
            "actionName": "search",
        }

    def test_events_without_fields(self):
        assert TextMessageEnd().to_dict() == {"type": "TextMessageEnd"}
        assert Complete().to_dict() == {"type": "Complete"}

    def test_parse_text_message_start(self):
        event = parse_runtime_event({"type": "TextMessageStart", "messageId": "m-1"})

        assert event == TextMessageStart(message_id="m-1")

    def test_parse_action_args(self):
        event = parse_runtime_event({"type": "ActionExecutionArgs", "args": '{"a": 1}'})

        assert event == ActionExecutionArgs(args='{"a": 1}')

    def test_parse_unknown_type(self):
        """Unknown event types are rejected."""
        with pytest.raises(ValueError, match="unknown runtime event type"):
            parse_runtime_event({"type": "Bogus"})

    def test_parse_missing_field(self):
        """Missing fields are reported as ValueError."""
        with pytest.raises(ValueError, match="missing"):
            parse_runtime_event({"type": "TextMessageContent"})


class TestEventStreamProduction:
    """Tests for EventStream.stream."""

    async def test_events_are_delivered_in_order(self):
        """Consumers receive events in production order, ending with Complete."""
        stream = EventStream()

        async def producer(emitter: EventEmitter) -> None:
            await emitter.send_text_message_start("m-1")
            await emitter.send_text_message_content("Hello")
            await emitter.send_text_message_end()
            await emitter.complete()

        stream.stream(producer)
        events = await stream.collect()

        assert events == [
            TextMessageStart(message_id="m-1"),
            TextMessageContent(content="Hello"),
            TextMessageEnd(),
            Complete(),
        ]
        assert stream.is_complete

    async def test_complete_is_emitted_once(self):
        """Completing twice still yields a single Complete."""
        stream = EventStream()

        async def producer(emitter: EventEmitter) -> None:
            await emitter.complete()
            await emitter.complete()
            await emitter.send(Complete())

        stream.stream(producer)
        events = await stream.collect()

        assert events == [Complete()]

    async def test_stream_completes_when_producer_returns(self):
        """A producer that forgets to complete is completed on its behalf."""
        stream = EventStream()

        async def producer(emitter: EventEmitter) -> None:
            await emitter.send_action_execution_start("call-1", "search")
            await emitter.send_action_execution_end()

        stream.stream(producer)
        events = await stream.collect()

        assert events[-1] == Complete()
        assert len(events) == 3

    async def test_producer_error_is_logged_and_completes(self):
        """A failing producer completes the stream and the error is logged."""
        logger = Mock()
        stream = EventStream(logger=logger)

        async def producer(emitter: EventEmitter) -> None:
            await emitter.send_text_message_start("m-1")
            raise RuntimeError("backend exploded")

        stream.stream(producer)
        events = await stream.collect()

        assert events == [TextMessageStart(message_id="m-1"), Complete()]
        logger.exception.assert_called_once()

    async def test_events_after_complete_are_dropped(self):
        stream = EventStream()

        async def producer(emitter: EventEmitter) -> None:
            await emitter.complete()
            await emitter.send_text_message_start("late")

        stream.stream(producer)

        assert await stream.collect() == [Complete()]

    async def test_stream_is_single_use(self):
        """Starting production twice raises RuntimeError."""
        stream = EventStream()

        async def producer(emitter: EventEmitter) -> None:
            await emitter.complete()

        stream.stream(producer)

        with pytest.raises(RuntimeError):
            stream.stream(producer)
        with pytest.raises(RuntimeError):
            stream.forward(_source([]))

        await stream.collect()

    async def test_bounded_buffer_applies_backpressure(self):
        """The producer waits while the buffer is full."""
        stream = EventStream(max_buffer=2)
        produced: list[int] = []

        async def producer(emitter: EventEmitter) -> None:
            for i in range(5):
                await emitter.send_text_message_content(str(i))
                produced.append(i)

        stream.stream(producer)
        await asyncio.sleep(0.01)

        assert len(produced) == 2

        events = await stream.collect()
        assert [e.content for e in events[:-1]] == ["0", "1", "2", "3", "4"]


async def _source(events):
    for event in events:
        yield event


class TestEventStreamForward:
    """Tests for EventStream.forward."""

    async def test_forwards_events_then_completes(self):
        """Every source event is forwarded once, followed by Complete."""
        stream = EventStream()
        source_events = [
            TextMessageStart(message_id="m-1"),
            TextMessageContent(content="Hi"),
            TextMessageEnd(),
        ]

        stream.forward(_source(source_events))

        assert await stream.collect() == [*source_events, Complete()]

    async def test_source_complete_is_not_duplicated(self):
        stream = EventStream()

        stream.forward(_source([TextMessageEnd(), Complete()]))

        assert await stream.collect() == [TextMessageEnd(), Complete()]

    async def test_source_error_is_logged(self):
        """A failing source is logged as a warning and the stream completes."""
        logger = Mock()
        stream = EventStream(logger=logger)

        async def failing_source():
            yield TextMessageStart(message_id="m-1")
            raise ConnectionError("agent went away")

        stream.forward(failing_source())
        events = await stream.collect()

        assert events == [TextMessageStart(message_id="m-1"), Complete()]
        logger.warning.assert_called_once()

    async def test_aclose_stops_pulling_from_source(self):
        """Closing the stream cancels forwarding and closes the source."""
        stream = EventStream(max_buffer=1)
        pulled: list[int] = []
        closed = asyncio.Event()

        async def endless_source():
            try:
                i = 0
                while True:
                    pulled.append(i)
                    yield TextMessageContent(content=str(i))
                    i += 1
            finally:
                closed.set()

        stream.forward(endless_source())
        async for event in stream:
            assert event == TextMessageContent(content="0")
            break

        await stream.aclose()

        assert stream.is_closed
        assert closed.is_set()
        assert len(pulled) < 10


class TestEventStreamClose:
    """Tests for consumer cancellation."""

    async def test_emitting_into_closed_stream_is_a_no_op(self):
        """A producer never crashes on a discarded stream."""
        stream = EventStream()
        await stream.aclose()
        emitter = EventEmitter(stream)

        await emitter.send_text_message_start("m-1")
        await emitter.complete()

        assert stream.is_closed

    async def test_aclose_cancels_producer(self):
        stream = EventStream()
        started = asyncio.Event()

        async def producer(emitter: EventEmitter) -> None:
            started.set()
            await asyncio.sleep(60)

        task = stream.stream(producer)
        await started.wait()

        await stream.aclose()

        assert task.cancelled()

    async def test_cancel_does_not_wait_for_producer(self):
        """cancel() unblocks a producer waiting on a full buffer."""
        stream = EventStream(max_buffer=1)
        blocked = asyncio.Event()

        async def producer(emitter: EventEmitter) -> None:
            await emitter.send_text_message_content("a")
            blocked.set()
            await emitter.send_text_message_content("b")

        task = stream.stream(producer)
        await blocked.wait()

        stream.cancel()
        assert stream.is_closed
        assert not task.done()

        await asyncio.wait([task], timeout=1)
        assert task.cancelled()
