"""Sync core: remote index, local scan, diff, upload queue and workers."""

from .binding import TaskScheduler, TaskState
from .comparator import CompareStats, FileComparator
from .engine import SyncEngine
from .operations import SyncOperations, UploadRequest, UploadResult
from .scanner import DirectoryScanner, LocalFile, RemoteKeyIndex
from .upload_queue import UploadQueue
from .workers import UploadWorkerPool

__all__ = [
    "SyncEngine",
    "TaskScheduler",
    "TaskState",
    "DirectoryScanner",
    "LocalFile",
    "RemoteKeyIndex",
    "FileComparator",
    "CompareStats",
    "SyncOperations",
    "UploadRequest",
    "UploadResult",
    "UploadQueue",
    "UploadWorkerPool",
]
