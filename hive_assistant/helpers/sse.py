"""
hive_assistant/helpers/sse.py
-----------------------------
Server-Sent-Events plumbing for streamed chat replies.

The reply is already complete when streaming starts; it is re-chunked with
a short delay between chunks so clients can render it progressively.

Event order
-----------
  start, content_start, content_delta{text} ..., content_done{fullText},
  metadata{...}, done

On failure ``error{error}`` replaces the rest of the sequence and is always
followed by ``done``.

Usage
-----
    stream = EventStream()
    start_background(stream_chat_events(stream, text, metadata))
    return StreamingResponse(stream.readable(), media_type="text/event-stream", headers=SSE_HEADERS)
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncGenerator, Coroutine, List, Optional, Set

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
    "Connection": "keep-alive",
}

DEFAULT_CHUNK_SIZE = 12
DEFAULT_DELAY_MS = 25

# keeps detached producer tasks referenced until they finish
_background_tasks: Set[asyncio.Task] = set()


class StreamClosedError(RuntimeError):
    """Raised on write after the stream was closed or its consumer went away."""


def format_sse(event_type: str, data: Optional[Any] = None) -> str:
    payload = json.dumps(data if data is not None else {})
    return f"event: {event_type}\ndata: {payload}\n\n"


def chunk_text(text: str, size: int = DEFAULT_CHUNK_SIZE) -> List[str]:
    if size <= 0:
        raise ValueError("chunk size must be positive")
    return [text[i:i + size] for i in range(0, len(text), size)]


class EventStream:
    """Queue-backed SSE stream: a producer writes, the HTTP response reads."""

    def __init__(self) -> None:
        self._queue: "asyncio.Queue[Optional[str]]" = asyncio.Queue()
        self.closed = False

    async def write(self, event_type: str, data: Optional[Any] = None) -> None:
        if self.closed:
            raise StreamClosedError(f"cannot write {event_type!r}: stream closed")
        await self._queue.put(format_sse(event_type, data))

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        await self._queue.put(None)

    async def readable(self) -> AsyncGenerator[str, None]:
        """Yield frames until closed. Marks the stream closed when the consumer stops."""
        try:
            while True:
                frame = await self._queue.get()
                if frame is None:
                    break
                yield frame
        finally:
            self.closed = True


async def stream_chat_events(
    stream: EventStream,
    text: str,
    metadata: Any,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    delay_ms: int = DEFAULT_DELAY_MS,
) -> None:
    """Produce the full event sequence for one reply, then close the stream."""
    try:
        await stream.write("start")
        await stream.write("content_start")
        chunks = chunk_text(text, chunk_size)
        for i, chunk in enumerate(chunks):
            await stream.write("content_delta", {"text": chunk})
            if i < len(chunks) - 1:
                await asyncio.sleep(delay_ms / 1000)
        await stream.write("content_done", {"fullText": text})
        await stream.write("metadata", metadata)
        await stream.write("done")
    except StreamClosedError:
        logger.info("Stream consumer went away; stopping")
    except Exception:
        logger.exception("Streaming failed")
        try:
            await stream.write("error", {"error": "Streaming failed"})
            await stream.write("done")
        except StreamClosedError:
            logger.info("Stream consumer went away before the error event")
    finally:
        await stream.close()


def start_background(coro: Coroutine[Any, Any, None]) -> asyncio.Task:
    """Run ``coro`` detached from the request, holding a reference until it ends."""
    task = asyncio.get_running_loop().create_task(coro)
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task
