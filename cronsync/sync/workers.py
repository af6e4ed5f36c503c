"""Fixed-size pool of upload workers."""

import logging
import threading
import time
from typing import Optional

from .operations import SyncOperations, UploadResult
from .upload_queue import UploadQueue

logger = logging.getLogger(__name__)


class UploadWorkerPool:
    """Runs ``concurrency`` threads that drain the shared upload queue.

    Each worker takes one request at a time and attempts it once. A failed
    open or upload is logged and the worker moves on to the next request.
    Workers exit when the queue is closed and empty.
    """

    def __init__(
        self,
        queue: UploadQueue,
        operations: SyncOperations,
        concurrency: int,
    ):
        """Initialize the worker pool.

        Args:
            queue: Shared upload queue
            operations: Performs the actual uploads
            concurrency: Number of worker threads (must be > 0)
        """
        if concurrency <= 0:
            raise ValueError(f"concurrency must be > 0, got {concurrency}")
        self.queue = queue
        self.operations = operations
        self.concurrency = concurrency
        self._threads: list[threading.Thread] = []
        self._stats_lock = threading.Lock()
        self._stats = {
            "uploaded": 0,
            "open_failed": 0,
            "upload_failed": 0,
            "bytes": 0,
        }

    @property
    def stats(self) -> dict:
        """Snapshot of the upload counters."""
        with self._stats_lock:
            return dict(self._stats)

    @property
    def alive(self) -> int:
        """Number of workers still running."""
        return sum(1 for t in self._threads if t.is_alive())

    def start(self) -> None:
        """Spawn the worker threads."""
        if self._threads:
            raise RuntimeError("Worker pool already started")

        logger.info(f"Starting {self.concurrency} upload worker(s)")
        for i in range(self.concurrency):
            thread = threading.Thread(target=self._run, name=f"cronsync-upload-{i}")
            self._threads.append(thread)
            thread.start()

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for every worker to exit.

        Workers only exit once the queue is closed and drained, so this
        should be called after :meth:`UploadQueue.close`.

        Args:
            timeout: Maximum seconds to wait overall (None waits forever)

        Returns:
            True if all workers have exited
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        for thread in self._threads:
            remaining = None
            if deadline is not None:
                remaining = max(0.0, deadline - time.monotonic())
            thread.join(remaining)
        return self.alive == 0

    def _record(self, result: UploadResult, size: int) -> None:
        with self._stats_lock:
            self._stats[result.value] += 1
            self._stats["bytes"] += size

    def _run(self) -> None:
        name = threading.current_thread().name
        logger.debug(f"{name} started")

        while True:
            request = self.queue.get()
            if request is None:
                break

            start = time.time()
            try:
                result, size = self.operations.upload(request)
            except Exception:
                # Keep the worker alive whatever happens to one file
                logger.exception(f"Unexpected error uploading {request.path}")
                result, size = UploadResult.UPLOAD_FAILED, 0
            self._record(result, size)
            logger.debug(
                f"{name} finished {request.key} ({result.value}) "
                f"in {time.time() - start:.2f}s"
            )

        logger.debug(f"{name} drained queue, exiting")
