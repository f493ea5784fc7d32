"""Byte streams for document content.

``ByteStream`` is a bounded producer/consumer buffer: writers block while it
is full and readers see either completion or the terminal error. ``Download``
wraps a streamed platform response.
"""

from __future__ import annotations

import asyncio
import inspect
from collections import deque
from collections.abc import AsyncIterable, AsyncIterator, Awaitable, Callable, Iterable
from typing import IO, Any, Protocol, Self, Union

import httpx

from .core.errors import ErrorFactory
from .errors import StreamClosedError
from .telemetry import get_logger

CHUNK_SIZE = 64 * 1024

Storable = Union[
    bytes,
    bytearray,
    memoryview,
    str,
    IO[bytes],
    Iterable[bytes],
    AsyncIterable[bytes],
]


class ByteStream:
    """Bounded in-memory byte pipe with backpressure.

    Example:
        stream = ByteStream()

        async def produce() -> None:
            async with stream:
                for chunk in chunks:
                    await stream.write(chunk)

        document, _ = await asyncio.gather(
            parcel.upload_document(stream, params).finished(), produce()
        )

    The producer and consumer must run concurrently once the buffer can
    fill up; ``write`` suspends until the consumer drains a chunk.
    """

    def __init__(self, max_buffered_chunks: int = 16) -> None:
        if max_buffered_chunks < 1:
            msg = "max_buffered_chunks must be at least 1"
            raise ValueError(msg)
        self._limit = max_buffered_chunks
        self._buffer: deque[bytes] = deque()
        self._cond = asyncio.Condition()
        self._closed = False
        self._error: BaseException | None = None

    @property
    def closed(self) -> bool:
        return self._closed or self._error is not None

    @property
    def buffered(self) -> int:
        return len(self._buffer)

    async def write(self, chunk: bytes | bytearray | memoryview) -> None:
        """Append a chunk, waiting while the buffer is full.

        Raises:
            StreamClosedError: If the stream was closed or aborted.
        """
        async with self._cond:
            await self._cond.wait_for(
                lambda: len(self._buffer) < self._limit or self.closed
            )
            if self.closed:
                raise StreamClosedError()
            if chunk:
                self._buffer.append(bytes(chunk))
                self._cond.notify_all()

    async def close(self) -> None:
        """Signal completion. Buffered chunks remain readable."""
        async with self._cond:
            self._closed = True
            self._cond.notify_all()

    async def abort(self, exc: BaseException) -> None:
        """Terminate the stream with ``exc``; buffered chunks are dropped."""
        async with self._cond:
            if self._error is None:
                self._error = exc
            self._buffer.clear()
            self._cond.notify_all()

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self

    async def __anext__(self) -> bytes:
        async with self._cond:
            await self._cond.wait_for(
                lambda: bool(self._buffer) or self.closed
            )
            if self._error is not None:
                raise self._error
            if self._buffer:
                chunk = self._buffer.popleft()
                self._cond.notify_all()
                return chunk
            raise StopAsyncIteration

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, exc_type: Any, exc: BaseException | None, tb: Any) -> None:
        if exc is not None:
            await self.abort(exc)
        else:
            await self.close()


def is_replayable(data: Storable) -> bool:
    """Whether ``data`` can be sent more than once."""
    return isinstance(data, (bytes, bytearray, memoryview, str))


def iter_storable(data: Storable, chunk_size: int = CHUNK_SIZE) -> AsyncIterator[bytes]:
    """Adapt any supported upload source to an async iterator of bytes.

    Raises:
        TypeError: Immediately, if ``data`` is not a supported source.
    """
    if isinstance(data, str):
        return _iter_chunks([data.encode("utf-8")])
    if isinstance(data, (bytes, bytearray, memoryview)):
        return _iter_chunks([bytes(data)])
    if isinstance(data, AsyncIterable):
        return _iter_async(data)
    if hasattr(data, "read"):
        return _iter_file(data, chunk_size)  # type: ignore[arg-type]
    if isinstance(data, Iterable):
        return _iter_chunks(data)
    msg = f"Unsupported upload data type: {type(data).__name__}"
    raise TypeError(msg)


async def _iter_chunks(chunks: Iterable[bytes]) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield bytes(chunk)


async def _iter_async(chunks: AsyncIterable[bytes]) -> AsyncIterator[bytes]:
    async for chunk in chunks:
        yield bytes(chunk)


async def _iter_file(file: IO[bytes], chunk_size: int) -> AsyncIterator[bytes]:
    while chunk := file.read(chunk_size):
        yield bytes(chunk)


class Sink(Protocol):
    def write(self, data: bytes, /) -> Any: ...


class Download:
    """Lazily opened, streamed download.

    Nothing is sent until the first read. Iterate to consume chunk by chunk
    (stopping early is fine), or use :meth:`read` / :meth:`pipe_to`.

    Raises ``ApiError`` on the first read if the platform refuses the
    download, and ``TransportError`` if the connection fails mid-stream.
    """

    def __init__(self, open_response: Callable[[], Awaitable[httpx.Response]]) -> None:
        self._open_response = open_response
        self._response: httpx.Response | None = None
        self._iterator: AsyncIterator[bytes] | None = None
        self._done = False
        self._logger = get_logger()

    @property
    def headers(self) -> httpx.Headers | None:
        return self._response.headers if self._response is not None else None

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self

    async def __anext__(self) -> bytes:
        if self._done:
            raise StopAsyncIteration
        if self._iterator is None:
            try:
                self._response = await self._open_response()
            except BaseException:
                self._done = True
                raise
            self._iterator = self._response.aiter_bytes()

        try:
            return await self._iterator.__anext__()
        except StopAsyncIteration:
            await self.aclose()
            raise
        except (httpx.HTTPError, httpx.StreamError) as e:
            await self.aclose()
            self._logger.warning("Download interrupted", error=str(e))
            raise ErrorFactory.from_exception(e) from e
        except BaseException:
            await self.aclose()
            raise

    async def read(self) -> bytes:
        """Read the remaining content into memory."""
        return b"".join([chunk async for chunk in self])

    async def pipe_to(self, sink: Sink | ByteStream) -> int:
        """Write every chunk to ``sink`` and return the byte count.

        ``sink.write`` may be sync (files, ``io.BytesIO``) or async
        (``ByteStream``, async writers). A ``ByteStream`` sink is closed on
        completion and aborted on failure.
        """
        total = 0
        try:
            async for chunk in self:
                result = sink.write(chunk)
                if inspect.isawaitable(result):
                    await result
                total += len(chunk)
        except Exception as e:
            if isinstance(sink, ByteStream):
                await sink.abort(e)
            raise
        if isinstance(sink, ByteStream):
            await sink.close()
        return total

    async def aclose(self) -> None:
        """Release the underlying connection."""
        self._done = True
        if self._response is not None:
            await self._response.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()
