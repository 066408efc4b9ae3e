from __future__ import annotations

import asyncio
import json

import pytest

from hive_assistant.helpers.sse import (
    EventStream,
    StreamClosedError,
    chunk_text,
    format_sse,
    start_background,
    stream_chat_events,
)


def _parse(frames):
    events = []
    for frame in frames:
        head, data = frame.rstrip("\n").split("\n")
        events.append((head.removeprefix("event: "), json.loads(data.removeprefix("data: "))))
    return events


async def _collect(stream):
    return [frame async for frame in stream.readable()]


def test_format_sse_frame():
    assert format_sse("content_delta", {"text": "Hi"}) == 'event: content_delta\ndata: {"text": "Hi"}\n\n'
    assert format_sse("done") == "event: done\ndata: {}\n\n"


def test_chunk_text():
    assert chunk_text("Hello world", 5) == ["Hello", " worl", "d"]
    assert chunk_text("", 5) == []
    with pytest.raises(ValueError):
        chunk_text("abc", 0)


@pytest.mark.asyncio
async def test_full_event_sequence():
    stream = EventStream()
    producer = start_background(stream_chat_events(stream, "Hello world", {"skillsAdded": 1}, chunk_size=5, delay_ms=0))

    events = _parse(await _collect(stream))
    await producer

    assert [name for name, _ in events] == [
        "start", "content_start", "content_delta", "content_delta", "content_delta",
        "content_done", "metadata", "done",
    ]
    assert "".join(data["text"] for name, data in events if name == "content_delta") == "Hello world"
    assert events[5][1] == {"fullText": "Hello world"}
    assert events[6][1] == {"skillsAdded": 1}


@pytest.mark.asyncio
async def test_consumer_disconnect_stops_producer_quietly():
    stream = EventStream()
    producer = start_background(stream_chat_events(stream, "x" * 100, {}, chunk_size=1, delay_ms=20))

    reader = stream.readable()
    first = await reader.__anext__()
    await reader.aclose()
    await asyncio.wait_for(producer, timeout=2)

    assert first.startswith("event: start")
    assert stream.closed is True
    assert producer.exception() is None
    with pytest.raises(StreamClosedError):
        await stream.write("content_delta", {"text": "late"})


@pytest.mark.asyncio
async def test_unserializable_metadata_ends_with_error_then_done():
    stream = EventStream()
    producer = start_background(stream_chat_events(stream, "Hi", object(), delay_ms=0))

    events = _parse(await _collect(stream))
    await producer

    names = [name for name, _ in events]
    assert names[-2:] == ["error", "done"]
    assert "metadata" not in names
    assert events[-2][1] == {"error": "Streaming failed"}


@pytest.mark.asyncio
async def test_close_is_idempotent():
    stream = EventStream()
    await stream.write("start")
    await stream.close()
    await stream.close()

    assert _parse(await _collect(stream)) == [("start", {})]
