"""Closeable FIFO queue shared by sync passes and upload workers."""

import threading
from collections import deque
from typing import Optional

from ..exceptions import QueueClosedError
from .operations import UploadRequest


class UploadQueue:
    """Thread-safe FIFO of upload requests that can be closed once.

    Producers call :meth:`put`, consumers call :meth:`get`. After
    :meth:`close`, ``put`` raises :class:`QueueClosedError` and ``get``
    keeps returning the remaining requests until the queue is drained, then
    returns ``None``.
    """

    def __init__(self, maxsize: int = 0):
        """Initialize the queue.

        Args:
            maxsize: Maximum number of pending requests; ``put`` blocks
                while the queue is full. 0 means unbounded.
        """
        if maxsize < 0:
            raise ValueError("maxsize must be >= 0")
        self.maxsize = maxsize
        self._items: deque[UploadRequest] = deque()
        self._closed = False
        self._lock = threading.Lock()
        self._not_empty = threading.Condition(self._lock)
        self._not_full = threading.Condition(self._lock)

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def _full(self) -> bool:
        return self.maxsize > 0 and len(self._items) >= self.maxsize

    def put(self, request: UploadRequest) -> None:
        """Append a request, blocking while the queue is full.

        Raises:
            QueueClosedError: If the queue is closed (also when it gets
                closed while waiting for room)
        """
        with self._not_full:
            while not self._closed and self._full():
                self._not_full.wait()
            if self._closed:
                raise QueueClosedError(
                    f"Upload queue is closed, cannot enqueue {request.path}"
                )
            self._items.append(request)
            self._not_empty.notify()

    def get(self) -> Optional[UploadRequest]:
        """Remove and return the oldest request.

        Blocks until a request is available or the queue is closed.

        Returns:
            The next request, or None once the queue is closed and empty
        """
        with self._not_empty:
            while not self._items and not self._closed:
                self._not_empty.wait()
            if not self._items:
                return None
            request = self._items.popleft()
            self._not_full.notify()
            return request

    def close(self) -> bool:
        """Close the queue. Calling it again has no effect.

        Returns:
            True if this call closed the queue, False if it was already closed
        """
        with self._lock:
            if self._closed:
                return False
            self._closed = True
            self._not_empty.notify_all()
            self._not_full.notify_all()
            return True
