"""Exceptions raised by cronsync."""


class CronsyncError(Exception):
    """Base exception for all cronsync errors."""


class ConfigError(CronsyncError):
    """Configuration file is missing, unreadable or malformed."""


class StorageError(CronsyncError):
    """The object-storage client could not be constructed or used."""


class BucketNotFoundError(StorageError):
    """The bucket does not exist on the remote."""

    def __init__(self, bucket: str):
        self.bucket = bucket
        super().__init__(f"Bucket not found: {bucket}")


class RemoteListingError(StorageError):
    """Listing the keys under a prefix could not be completed."""

    def __init__(self, bucket: str, prefix: str, detail: str = ""):
        self.bucket = bucket
        self.prefix = prefix
        self.detail = detail
        message = f"Failed to list s3://{bucket}/{prefix}"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class SchedulerError(CronsyncError):
    """The cron scheduler could not be constructed or used."""


class InvalidScheduleError(SchedulerError):
    """A cron expression could not be parsed."""

    def __init__(self, expression: str, detail: str = ""):
        self.expression = expression
        message = f"Invalid cron expression: {expression!r}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class QueueClosedError(CronsyncError):
    """An upload was enqueued after the upload queue was closed."""
