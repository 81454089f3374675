"""Bounded pool of reusable byte buffers.

Response writers borrow a buffer per request and hand it back on close.
When the pool is empty a fresh buffer is allocated; when it is full a
returned buffer is dropped for the garbage collector.
"""

import contextlib
import io
import queue

DEFAULT_POOL_SIZE = 100


class BufferPool:
    """Thread-safe pool of ``io.BytesIO`` buffers."""

    __slots__ = ("_buffers", "size")

    def __init__(self, size: int = DEFAULT_POOL_SIZE) -> None:
        self.size = size
        # maxsize=0 would mean unbounded
        self._buffers: queue.Queue[io.BytesIO] = queue.Queue(maxsize=max(size, 1))

    def get(self) -> io.BytesIO:
        """Return a pooled buffer, or a new one if none is available."""
        try:
            return self._buffers.get_nowait()
        except queue.Empty:
            return io.BytesIO()

    def put(self, buf: io.BytesIO) -> None:
        """Reset *buf* and keep it if there is room."""
        buf.seek(0)
        buf.truncate()
        if self.size <= 0:
            return
        with contextlib.suppress(queue.Full):
            self._buffers.put_nowait(buf)

    def __len__(self) -> int:
        return self._buffers.qsize()
