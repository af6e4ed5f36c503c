"""cronsync - Mirror local directory trees into S3 buckets on a cron schedule."""

__version__ = "0.1.0"

from .config import BackupTask, Bucket, Config, load_config  # noqa: E402
from .exceptions import (  # noqa: E402
    BucketNotFoundError,
    ConfigError,
    CronsyncError,
    InvalidScheduleError,
    QueueClosedError,
    RemoteListingError,
    SchedulerError,
    StorageError,
)
from .utils import join_key  # noqa: E402

__all__ = [
    "__version__",
    "BackupTask",
    "Bucket",
    "Config",
    "load_config",
    "CronsyncError",
    "ConfigError",
    "StorageError",
    "BucketNotFoundError",
    "RemoteListingError",
    "SchedulerError",
    "InvalidScheduleError",
    "QueueClosedError",
    "join_key",
]
