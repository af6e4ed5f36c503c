"""Application lifecycle: startup order and graceful shutdown."""

import logging
import signal
import threading
from typing import Optional

from .config import Config
from .scheduler import CronScheduler
from .storage import StorageClient
from .sync.binding import TaskScheduler
from .sync.engine import SyncEngine
from .sync.operations import SyncOperations
from .sync.upload_queue import UploadQueue
from .sync.workers import UploadWorkerPool

logger = logging.getLogger(__name__)


class Application:
    """Owns every service of a running cronsync process.

    Startup order is fixed: upload workers, then task registration, then the
    scheduler clock. Shutdown closes the upload queue, waits until every
    worker has drained it and only then stops the scheduler.
    """

    def __init__(
        self,
        config: Config,
        storage: StorageClient,
        scheduler: CronScheduler,
    ):
        """Initialize the application.

        Args:
            config: Loaded configuration
            storage: Object-storage client
            scheduler: Cron scheduler service
        """
        self.config = config
        self.storage = storage
        self.scheduler = scheduler
        self.queue = UploadQueue(maxsize=config.queue_size)
        self.workers = UploadWorkerPool(
            self.queue, SyncOperations(storage), config.concurrency
        )
        self.engine = SyncEngine(storage, self.queue)
        self.tasks = TaskScheduler(scheduler, storage, self.engine)
        self._stop_event = threading.Event()
        self._shutdown_lock = threading.Lock()
        self._started = False
        self._shut_down = False

    @classmethod
    def from_config(cls, config: Config) -> "Application":
        """Construct the storage client and scheduler from configuration.

        Raises:
            StorageError: If the storage client cannot be constructed
            SchedulerError: If the scheduler cannot be constructed
        """
        storage = StorageClient.from_config(config)
        scheduler = CronScheduler(
            overlap=config.overlap, max_concurrent_runs=config.concurrency
        )
        return cls(config, storage, scheduler)

    def start(self) -> None:
        """Start workers, register tasks and start the scheduler clock."""
        if self._started:
            raise RuntimeError("Application already started")
        self._started = True

        self.workers.start()
        logger.info("Started upload handlers")
        self.tasks.schedule_all(self.config.buckets)
        self.scheduler.start()
        logger.info("Scheduler started")

    def request_stop(self, signum: Optional[int] = None, frame=None) -> None:
        """Ask :meth:`run_forever` to shut down (usable as a signal handler)."""
        if signum is not None:
            logger.info(f"Received {signal.Signals(signum).name}, shutting down")
        self._stop_event.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until a stop is requested.

        Returns:
            True if a stop was requested
        """
        return self._stop_event.wait(timeout)

    def shutdown(self) -> dict:
        """Drain pending uploads and stop the scheduler.

        The queue is closed first so no pass can enqueue anything new,
        then every worker is joined, then the scheduler is stopped.
        Calling it more than once has no further effect.

        Returns:
            Upload statistics of the worker pool
        """
        with self._shutdown_lock:
            if self._shut_down:
                return self.workers.stats
            self._shut_down = True

            pending = len(self.queue)
            self.queue.close()
            logger.info(f"Upload queue closed, waiting for {pending} pending upload(s)")
            self.workers.join()
            logger.info("All upload handlers finished")

            self.scheduler.shutdown(wait=True)
            logger.info("Scheduler stopped")

            stats = self.workers.stats
            logger.info(
                f"Uploaded {stats['uploaded']} file(s), "
                f"{stats['open_failed'] + stats['upload_failed']} failed"
            )
            return stats

    def run_forever(self) -> dict:
        """Run until SIGINT or SIGTERM, then shut down gracefully.

        Returns:
            Upload statistics of the worker pool
        """
        signal.signal(signal.SIGINT, self.request_stop)
        signal.signal(signal.SIGTERM, self.request_stop)

        try:
            self.start()
            logger.info("Running, press Ctrl+C to stop")
            while not self.wait(timeout=1.0):
                pass
        finally:
            stats = self.shutdown()
        return stats

    def run_once(self) -> tuple[dict[str, dict], dict]:
        """Run every task once without starting the scheduler clock.

        Returns:
            Tuple of (pass statistics keyed by task id, upload statistics)
        """
        if self._started:
            raise RuntimeError("Application already started")
        self._started = True

        self.workers.start()
        try:
            self.tasks.schedule_all(self.config.buckets)
            results = self.tasks.run_all_once()
        finally:
            stats = self.shutdown()
        return results, stats
