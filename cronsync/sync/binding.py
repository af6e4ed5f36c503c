"""Binds backup tasks to the cron scheduler."""

import logging
import threading
from collections.abc import Iterable
from enum import Enum
from typing import Callable

from ..config import BackupTask, Bucket
from ..exceptions import InvalidScheduleError, SchedulerError
from ..scheduler import CronScheduler
from ..storage import ProbeStatus, StorageClient
from .engine import SyncEngine

logger = logging.getLogger(__name__)


class TaskState(str, Enum):
    """Lifecycle of a backup task inside the scheduler."""

    UNREGISTERED = "unregistered"
    """Not scheduled (bucket missing, probe failed or invalid schedule)"""

    REGISTERED = "registered"
    """Scheduled and idle"""

    FIRING = "firing"
    """At least one sync pass is running"""


def task_id(bucket: Bucket, task: BackupTask) -> str:
    """Return the identifier of a task within the whole configuration."""
    return f"{bucket.name}/{task.name}"


class TaskScheduler:
    """Registers one cron job per (bucket, task) pair.

    Each bucket is probed once before its tasks are registered. A missing
    bucket, a failed probe or an invalid cron expression leaves the affected
    tasks unregistered for the lifetime of the process.
    """

    def __init__(
        self,
        scheduler: CronScheduler,
        storage: StorageClient,
        engine: SyncEngine,
    ):
        """Initialize the task scheduler.

        Args:
            scheduler: Cron scheduler service
            storage: Object-storage client used for the bucket probe
            engine: Runs the sync pass on every firing
        """
        self.scheduler = scheduler
        self.storage = storage
        self.engine = engine
        self._lock = threading.Lock()
        self._states: dict[str, TaskState] = {}
        self._registered: dict[str, tuple[Bucket, BackupTask]] = {}
        self._running: dict[str, int] = {}

    @property
    def states(self) -> dict[str, TaskState]:
        """Snapshot of every known task's state, keyed by task id."""
        with self._lock:
            return dict(self._states)

    @property
    def registered(self) -> list[tuple[Bucket, BackupTask]]:
        with self._lock:
            return list(self._registered.values())

    def _set_state(self, key: str, state: TaskState) -> None:
        with self._lock:
            self._states[key] = state

    def schedule_all(self, buckets: Iterable[Bucket]) -> int:
        """Probe every bucket and register its tasks.

        Args:
            buckets: Configured buckets

        Returns:
            Number of tasks registered
        """
        logger.info("Scheduling bucket tasks")
        count = 0
        for bucket in buckets:
            count += self.schedule_bucket(bucket)
        logger.info(f"Scheduled {count} task(s)")
        return count

    def schedule_bucket(self, bucket: Bucket) -> int:
        """Register the tasks of one bucket if the bucket exists remotely.

        Args:
            bucket: Bucket to schedule

        Returns:
            Number of tasks registered
        """
        for task in bucket.tasks:
            self._set_state(task_id(bucket, task), TaskState.UNREGISTERED)

        logger.info(f"Scheduling tasks for bucket {bucket.name}")
        probe = self.storage.probe_bucket(bucket.name)
        if probe.status is ProbeStatus.NOT_FOUND:
            logger.warning(f"Bucket {bucket.name} doesn't exist in remote, skipping")
            return 0
        if probe.status is ProbeStatus.ERROR:
            logger.warning(
                f"Error checking bucket {bucket.name}, skipping its tasks: "
                f"{probe.detail or 'unknown error'}"
            )
            return 0

        count = 0
        for task in bucket.tasks:
            if self._register_task(bucket, task):
                count += 1
        logger.info(f"Scheduled {count}/{len(bucket.tasks)} task(s) for {bucket.name}")
        return count

    def _register_task(self, bucket: Bucket, task: BackupTask) -> bool:
        key = task_id(bucket, task)
        try:
            self.scheduler.register(
                task.schedule, self._make_callback(bucket, task), name=key
            )
        except InvalidScheduleError as e:
            logger.warning(
                f"Invalid cron schedule for task {key} "
                f"(local={task.local_path}, remote={task.remote_path}): {e}"
            )
            return False
        except SchedulerError as e:
            logger.warning(f"Could not schedule task {key}: {e}")
            return False

        with self._lock:
            self._states[key] = TaskState.REGISTERED
            self._registered[key] = (bucket, task)
        logger.info(
            f"Task scheduled: {key} ({task.schedule}) "
            f"{task.local_path} -> {task.remote_path or '/'}"
        )
        return True

    def _make_callback(self, bucket: Bucket, task: BackupTask) -> Callable[[], None]:
        def fire() -> None:
            self.run_task(bucket, task)

        return fire

    def run_task(self, bucket: Bucket, task: BackupTask) -> dict:
        """Run one sync pass for a registered task.

        Errors are logged and never propagated to the scheduler.

        Args:
            bucket: Bucket of the task
            task: Task to run

        Returns:
            Pass statistics (``aborted`` is True if the pass did not complete)
        """
        key = task_id(bucket, task)
        self._begin_pass(key)
        try:
            return self.engine.sync_task(bucket.name, task)
        except Exception:
            logger.exception(f"Unexpected error in task {key}")
            return {"aborted": True}
        finally:
            self._end_pass(key)

    def _begin_pass(self, key: str) -> None:
        with self._lock:
            self._running[key] = self._running.get(key, 0) + 1
            self._states[key] = TaskState.FIRING

    def _end_pass(self, key: str) -> None:
        # Passes of one task may overlap with the "concurrent" policy
        with self._lock:
            self._running[key] -= 1
            if self._running[key] == 0:
                del self._running[key]
                self._states[key] = TaskState.REGISTERED

    def run_all_once(self) -> dict[str, dict]:
        """Run every registered task once, immediately and in order.

        Returns:
            Pass statistics keyed by task id
        """
        results: dict[str, dict] = {}
        for bucket, task in self.registered:
            results[task_id(bucket, task)] = self.run_task(bucket, task)
        return results
