"""
Push-style upload sink with backpressure
"""

import asyncio
import logging
from typing import AsyncIterator, Awaitable, Callable, Optional, Union

from ._constants import DEFAULT_SINK_QUEUE_SIZE
from .error import LengthMismatchException, UploadAbortedException
from .models import ObjectInfo

# Consumes the pushed chunks and completes the upload.
Transfer = Callable[[AsyncIterator[bytes]], Awaitable[ObjectInfo]]

Chunk = Union[bytes, bytearray, memoryview]

_EOF = object()

logger = logging.getLogger(__name__)


class ObjectSink:
    """
    Receives object content from the caller and streams it to the server.

    Chunks pass through a bounded queue drained by a single background
    transfer task, so ``write`` suspends while the transport is behind.
    ``close`` finishes the upload and returns the resulting ObjectInfo.

    When a length was declared, writing past it raises
    LengthMismatchException immediately, and closing short of it raises the
    same exception from ``close``. In both cases the upload is abandoned and
    no object is committed.

    A sink has a single producer. Calling ``abort`` (or leaving an
    ``async with`` block on an exception) abandons the upload; bytes already
    sent are not rolled back.

    Example:
        async with bucket.write("logs/today.txt", content_type="text/plain") as sink:
            async for line in lines:
                await sink.write(line)
        info = await sink.done()
    """

    def __init__(
        self,
        transfer: Transfer,
        length: Optional[int] = None,
        queue_size: int = DEFAULT_SINK_QUEUE_SIZE,
        description: str = "",
    ):
        if length is not None and length < 0:
            raise ValueError(f"Upload length must not be negative, got {length}.")
        self._transfer = transfer
        self._length = length
        self._queue_size = queue_size
        self._description = description
        self._queue: Optional[asyncio.Queue] = None
        self._task: Optional[asyncio.Task] = None
        self._failure: Optional[BaseException] = None
        self._written = 0
        self._closed = False

    @property
    def length(self) -> Optional[int]:
        """Declared length, or None for an unknown-length upload."""
        return self._length

    @property
    def bytes_written(self) -> int:
        return self._written

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_started(self) -> None:
        if self._task is None:
            self._queue = asyncio.Queue(maxsize=self._queue_size)
            self._task = asyncio.ensure_future(self._transfer(self._chunks()))

    async def _chunks(self) -> AsyncIterator[bytes]:
        while True:
            chunk = await self._queue.get()
            if chunk is _EOF:
                return
            yield chunk

    async def _put(self, item, size: int = 0) -> None:
        # Wait for queue space, unless the transfer ends first.
        putter = asyncio.ensure_future(self._queue.put(item))
        try:
            await asyncio.wait({putter, self._task}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            # cancel() is False once the item is already queued.
            if not putter.cancel():
                self._written += size
            raise
        if putter.done():
            self._written += size
            return
        putter.cancel()
        self._closed = True
        self._task.result()
        raise RuntimeError("Upload finished before all content was written.")

    async def _fail(self, error: BaseException) -> None:
        self._closed = True
        self._failure = error
        if self._task is not None and not self._task.done():
            self._task.cancel()
            await asyncio.wait({self._task})

    async def write(self, data: Chunk) -> None:
        """Push a chunk of content, suspending while the queue is full."""
        if self._closed:
            raise ValueError("Cannot write to a closed upload sink.")
        if not data:
            return
        self._ensure_started()
        if self._length is not None and self._written + len(data) > self._length:
            error = LengthMismatchException(self._length, self._written + len(data))
            logger.warning(
                "[GcStorage][Upload] object=%s lengthMismatch expected=%s actual=%s",
                self._description,
                error.expected,
                error.actual,
            )
            await self._fail(error)
            raise error
        await self._put(bytes(data), len(data))

    async def close(self) -> ObjectInfo:
        """Finish the upload and return the created object's information."""
        if not self._closed:
            self._closed = True
            self._ensure_started()
            if self._length is not None and self._written != self._length:
                logger.warning(
                    "[GcStorage][Upload] object=%s lengthMismatch expected=%s actual=%s",
                    self._description,
                    self._length,
                    self._written,
                )
                await self._fail(LengthMismatchException(self._length, self._written))
            else:
                await self._put(_EOF)
        return await self.done()

    async def done(self) -> ObjectInfo:
        """Wait for the upload to complete; raises if it failed."""
        if self._failure is not None:
            raise self._failure
        if self._task is None:
            raise ValueError("Upload has not been started; close the sink first.")
        return await asyncio.shield(self._task)

    async def abort(self) -> None:
        """Abandon the upload without committing the object."""
        if self._failure is not None or (self._task is not None and self._task.done()):
            self._closed = True
            return
        logger.warning("[GcStorage][Upload] object=%s aborted written=%s", self._description, self._written)
        await self._fail(UploadAbortedException(self._description))

    async def __aenter__(self) -> "ObjectSink":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            await self.close()
        else:
            await self.abort()
