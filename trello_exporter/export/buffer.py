import logging
import threading
from contextlib import contextmanager
from io import StringIO
from typing import List

from trello_exporter.constants import MAX_POOLED_BUFFER_SIZE

LOG = logging.getLogger(__name__)


class MarkdownBuffer:
    def __init__(self):
        self._stream = StringIO()
        self._capacity = 0

    @property
    def capacity(self) -> int:
        """High-water mark of characters held since the buffer was created."""
        return max(self._capacity, self._stream.tell())

    def __len__(self):
        return self._stream.tell()

    def write(self, text: str):
        self._stream.write(text)
        return self

    def write_line(self, line: str = ""):
        self._stream.write(line)
        self._stream.write("\n")
        return self

    def getvalue(self) -> str:
        return self._stream.getvalue()

    def reset(self):
        self._capacity = self.capacity
        self._stream.seek(0)
        self._stream.truncate(0)


class BufferPool:
    def __init__(self, max_buffer_size: int = MAX_POOLED_BUFFER_SIZE):
        self._max_buffer_size = max_buffer_size
        self._free: List[MarkdownBuffer] = []
        self._lock = threading.Lock()

    def __len__(self):
        with self._lock:
            return len(self._free)

    def acquire(self) -> MarkdownBuffer:
        with self._lock:
            buf = self._free.pop() if self._free else None
        if buf is None:
            buf = MarkdownBuffer()
        buf.reset()
        return buf

    def release(self, buf: MarkdownBuffer):
        # Huge buffers are dropped so a single large card does not bloat the pool
        if buf.capacity > self._max_buffer_size:
            LOG.debug("Discarding buffer with capacity %d", buf.capacity)
            return
        buf.reset()
        with self._lock:
            self._free.append(buf)

    @contextmanager
    def borrow(self):
        buf = self.acquire()
        try:
            yield buf
        finally:
            self.release(buf)
