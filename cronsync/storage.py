"""Object-storage client for S3-compatible services.

The sync core never inspects boto3 exceptions itself: bucket probes and key
listings return a tagged outcome (:class:`ProbeStatus`) so that callers can
tell a missing bucket apart from a transport or API failure.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import IO, Any, Optional

import boto3
from boto3.s3.transfer import TransferConfig
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from .config import Config
from .exceptions import StorageError
from .utils import DEFAULT_CHUNK_SIZE, DEFAULT_MULTIPART_THRESHOLD

logger = logging.getLogger(__name__)

# Error codes S3-compatible services use for a missing bucket
NOT_FOUND_CODES = frozenset({"404", "NoSuchBucket", "NotFound"})


class ProbeStatus(str, Enum):
    """Outcome of a remote call that may hit a missing bucket."""

    FOUND = "found"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass(frozen=True)
class BucketProbe:
    """Result of a bucket existence check."""

    bucket: str
    status: ProbeStatus
    detail: str = ""

    @property
    def found(self) -> bool:
        return self.status is ProbeStatus.FOUND


@dataclass(frozen=True)
class ListResult:
    """Result of listing every key under a prefix."""

    bucket: str
    prefix: str
    status: ProbeStatus
    keys: frozenset = field(default_factory=frozenset)
    """Complete set of keys (only meaningful when status is FOUND)"""

    pages: int = 0
    detail: str = ""


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


def _classify(error: Exception) -> tuple[ProbeStatus, str]:
    """Map a boto3 exception to a probe status and a log-friendly detail."""
    if isinstance(error, ClientError):
        code = _error_code(error)
        if code in NOT_FOUND_CODES:
            return ProbeStatus.NOT_FOUND, code
        message = error.response.get("Error", {}).get("Message", "")
        return ProbeStatus.ERROR, f"{code}: {message}" if message else code
    return ProbeStatus.ERROR, str(error)


class StorageClient:
    """Thin wrapper around a boto3 S3 client."""

    def __init__(
        self,
        client: Any,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        multipart_threshold: int = DEFAULT_MULTIPART_THRESHOLD,
    ):
        """Initialize the storage client.

        Args:
            client: boto3 S3 client (or a compatible double in tests)
            chunk_size: Part size for multipart uploads
            multipart_threshold: Size above which uploads are multipart
        """
        self.client = client
        self.transfer_config = TransferConfig(
            multipart_threshold=multipart_threshold,
            multipart_chunksize=chunk_size,
            use_threads=False,
        )

    @classmethod
    def from_config(cls, config: Config) -> "StorageClient":
        """Build a client from static credentials, endpoint and region.

        Args:
            config: Loaded configuration

        Returns:
            StorageClient instance

        Raises:
            StorageError: If boto3 cannot construct the client
        """
        boto_config = BotoConfig(
            signature_version="s3v4",
            retries={"total_max_attempts": 1, "mode": "standard"},
        )
        try:
            client = boto3.client(
                "s3",
                endpoint_url=config.remote.endpoint or None,
                region_name=config.remote.region or None,
                aws_access_key_id=config.credentials.application_key_id or None,
                aws_secret_access_key=config.credentials.application_key or None,
                config=boto_config,
            )
        except (BotoCoreError, ValueError) as e:
            raise StorageError(f"Cannot create storage client: {e}") from e

        logger.debug(
            "Created S3 client (endpoint=%s, region=%s)",
            config.remote.endpoint or "default",
            config.remote.region or "default",
        )
        return cls(client)

    def probe_bucket(self, bucket: str) -> BucketProbe:
        """Check whether a bucket exists.

        Args:
            bucket: Bucket name

        Returns:
            BucketProbe with FOUND, NOT_FOUND or ERROR status
        """
        try:
            self.client.head_bucket(Bucket=bucket)
        except (ClientError, BotoCoreError) as e:
            status, detail = _classify(e)
            return BucketProbe(bucket=bucket, status=status, detail=detail)
        return BucketProbe(bucket=bucket, status=ProbeStatus.FOUND)

    def list_keys(self, bucket: str, prefix: str = "") -> ListResult:
        """List every key under a prefix, following all pages.

        A failure on any page discards the keys gathered so far.

        Args:
            bucket: Bucket name
            prefix: Key prefix ("" for the whole bucket)

        Returns:
            ListResult with the complete key set on success
        """
        keys: set[str] = set()
        pages = 0
        try:
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=bucket, Prefix=prefix):
                pages += 1
                for obj in page.get("Contents", []):
                    keys.add(obj["Key"])
        except (ClientError, BotoCoreError) as e:
            status, detail = _classify(e)
            return ListResult(
                bucket=bucket, prefix=prefix, status=status, pages=pages, detail=detail
            )

        logger.debug(
            f"Listed {len(keys)} key(s) under s3://{bucket}/{prefix} "
            f"across {pages} page(s)"
        )
        return ListResult(
            bucket=bucket,
            prefix=prefix,
            status=ProbeStatus.FOUND,
            keys=frozenset(keys),
            pages=pages,
        )

    def upload_fileobj(
        self, fileobj: IO[bytes], bucket: str, key: str, size: Optional[int] = None
    ) -> None:
        """Upload the full contents of an open file to ``bucket``/``key``.

        Args:
            fileobj: Binary file object positioned at the start
            bucket: Destination bucket
            key: Destination object key
            size: Size in bytes, used only for logging

        Raises:
            ClientError, BotoCoreError: If the transfer fails
        """
        logger.debug(
            "Uploading %s bytes to s3://%s/%s",
            size if size is not None else "?",
            bucket,
            key,
        )
        self.client.upload_fileobj(fileobj, bucket, key, Config=self.transfer_config)
