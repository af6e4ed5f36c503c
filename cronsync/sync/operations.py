"""Upload operation for a single file."""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import BotoCoreError, ClientError

from ..storage import StorageClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadRequest:
    """A local file that must be uploaded to a bucket."""

    path: Path
    """Absolute path of the source file"""

    key: str
    """Destination object key"""

    bucket: str
    """Destination bucket"""


class UploadResult(str, Enum):
    """Outcome of a single upload attempt."""

    UPLOADED = "uploaded"
    OPEN_FAILED = "open_failed"
    UPLOAD_FAILED = "upload_failed"


class SyncOperations:
    """Performs uploads against the storage client."""

    def __init__(self, storage: StorageClient):
        """Initialize sync operations.

        Args:
            storage: Object-storage client
        """
        self.storage = storage

    def upload(self, request: UploadRequest) -> tuple[UploadResult, int]:
        """Upload one file, attempting it exactly once.

        Failures are logged and reported through the return value; they
        never propagate.

        Args:
            request: Upload to perform

        Returns:
            Tuple of (result, bytes uploaded)
        """
        try:
            f = open(request.path, "rb")
        except OSError as e:
            logger.error(f"Error opening file {request.path}: {e}")
            return UploadResult.OPEN_FAILED, 0

        with f:
            try:
                size = request.path.stat().st_size
            except OSError:
                size = 0
            target = f"s3://{request.bucket}/{request.key}"
            logger.info(f"Uploading {request.path} to {target}")
            try:
                self.storage.upload_fileobj(f, request.bucket, request.key, size=size)
            except (ClientError, BotoCoreError, S3UploadFailedError, OSError) as e:
                logger.error(f"Error uploading file {request.path}: {e}")
                return UploadResult.UPLOAD_FAILED, 0

        logger.info(f"Uploaded {request.path} to bucket {request.bucket}")
        return UploadResult.UPLOADED, size
