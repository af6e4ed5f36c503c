"""Sync pass: list remote, scan local, diff and enqueue uploads."""

import logging
import os
import time
from typing import Optional

from ..config import BackupTask
from ..exceptions import BucketNotFoundError, QueueClosedError, RemoteListingError
from ..storage import StorageClient
from .comparator import FileComparator
from .scanner import DirectoryScanner, RemoteKeyIndex
from .upload_queue import UploadQueue

logger = logging.getLogger(__name__)


class SyncEngine:
    """Runs sync passes for backup tasks and feeds the upload queue."""

    def __init__(
        self,
        storage: StorageClient,
        queue: UploadQueue,
        follow_symlinks: bool = False,
    ):
        """Initialize sync engine.

        Args:
            storage: Object-storage client used to list existing keys
            queue: Shared queue the missing files are pushed onto
            follow_symlinks: Whether the local scan descends into
                symlinked directories
        """
        self.storage = storage
        self.queue = queue
        self.index = RemoteKeyIndex(storage)
        self.follow_symlinks = follow_symlinks

    def _create_empty_stats(self) -> dict:
        return {
            "scanned": 0,
            "present": 0,
            "queued": 0,
            "scan_errors": 0,
            "aborted": False,
        }

    def sync_task(self, bucket: str, task: BackupTask) -> dict:
        """Run one sync pass for a task.

        Every local file whose key is missing from the remote is pushed
        onto the upload queue. The pass never uploads anything itself.

        Args:
            bucket: Destination bucket name
            task: Backup task to synchronize

        Returns:
            Dictionary with pass statistics

        Examples:
            >>> engine = SyncEngine(storage, queue)
            >>> stats = engine.sync_task("photos", task)
            >>> print(f"Queued {stats['queued']} file(s)")
        """
        stats = self._create_empty_stats()
        start_time = time.time()

        if self.queue.closed:
            logger.info(f"Shutting down, skipping task {task.name}")
            stats["aborted"] = True
            return stats

        if not os.path.isdir(task.local_path):
            logger.error(
                f"Local path for task {task.name} is not a directory: {task.local_path}"
            )
            stats["aborted"] = True
            return stats

        logger.info(
            f"Syncing {task.local_path} -> s3://{bucket}/{task.remote_path} "
            f"(task {task.name})"
        )

        remote_keys = self._build_index(bucket, task)
        if remote_keys is None:
            stats["aborted"] = True
            return stats

        scanner = DirectoryScanner(follow_symlinks=self.follow_symlinks)
        comparator = FileComparator(bucket=bucket)
        local_files = scanner.scan_local(task.local_path, task.remote_path)

        try:
            for request in comparator.compare(remote_keys, local_files):
                self.queue.put(request)
                stats["queued"] += 1
        except QueueClosedError:
            logger.warning(
                f"Upload queue closed during task {task.name}, "
                f"stopped after queueing {stats['queued']} file(s)"
            )
            stats["aborted"] = True

        stats["scanned"] = comparator.stats.scanned
        stats["present"] = comparator.stats.present
        stats["scan_errors"] = scanner.errors

        elapsed = time.time() - start_time
        logger.info(
            f"Task {task.name}: {stats['scanned']} local file(s), "
            f"{stats['present']} already in bucket, {stats['queued']} queued "
            f"({elapsed:.2f}s)"
        )
        return stats

    def _build_index(self, bucket: str, task: BackupTask) -> Optional[frozenset]:
        """Build the remote key index, or return None if the pass must abort."""
        index_start = time.time()
        try:
            remote_keys = self.index.build(bucket, task.remote_path)
        except BucketNotFoundError:
            return None
        except RemoteListingError as e:
            logger.error(f"Aborting task {task.name}: {e}")
            return None

        logger.debug(
            f"Remote index for task {task.name} has {len(remote_keys)} key(s) "
            f"({time.time() - index_start:.2f}s)"
        )
        return remote_keys
