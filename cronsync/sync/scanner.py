"""Local and remote scanning for sync passes."""

import logging
import os
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from ..exceptions import BucketNotFoundError, RemoteListingError
from ..storage import ProbeStatus, StorageClient
from ..utils import join_key, listing_prefix, relative_posix_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LocalFile:
    """A regular file found under a task's local root."""

    path: Path
    """Absolute path to the file"""

    relative_path: str
    """Path relative to the scan root (forward slashes on all platforms)"""

    key: str
    """Object key the file maps to on the remote"""


class DirectoryScanner:
    """Walks a local directory tree and maps files to object keys.

    The walk is lazy: files are yielded as they are discovered so that a
    pass can start enqueueing uploads before the whole tree is read.

    Examples:
        >>> scanner = DirectoryScanner()
        >>> for f in scanner.scan_local("/data/photos", "albums/2024"):
        ...     print(f.key)
    """

    def __init__(self, follow_symlinks: bool = False):
        """Initialize directory scanner.

        Args:
            follow_symlinks: Whether to descend into symlinked directories.
                Symlinks to files are always reported as files.
        """
        self.follow_symlinks = follow_symlinks
        self.errors = 0

    def _on_error(self, error: OSError) -> None:
        self.errors += 1
        logger.error(f"Skipping unreadable entry {error.filename}: {error.strerror}")

    def scan_local(
        self, root: Union[str, Path], remote_prefix: Optional[str] = ""
    ) -> Iterator[LocalFile]:
        """Recursively scan a local directory.

        Args:
            root: Directory to scan
            remote_prefix: Prefix prepended to every relative path to form
                the object key

        Yields:
            LocalFile for every regular file, in traversal order
        """
        root_path = os.path.abspath(os.fspath(root))
        self.errors = 0

        for dirpath, dirnames, filenames in os.walk(
            root_path, onerror=self._on_error, followlinks=self.follow_symlinks
        ):
            # Deterministic order within a directory
            dirnames.sort()
            for name in sorted(filenames):
                file_path = os.path.join(dirpath, name)
                if not os.path.isfile(file_path):
                    # Broken symlink, socket, fifo...
                    logger.debug(f"Skipping non-regular entry: {file_path}")
                    continue

                relative_path = relative_posix_path(file_path, root_path)
                yield LocalFile(
                    path=Path(file_path),
                    relative_path=relative_path,
                    key=join_key(remote_prefix, relative_path),
                )


class RemoteKeyIndex:
    """Builds the set of keys that already exist under a remote prefix."""

    def __init__(self, storage: StorageClient):
        self.storage = storage

    def build(self, bucket: str, prefix: Optional[str] = "") -> frozenset:
        """Return every existing key under ``prefix`` in ``bucket``.

        The index is never cached: each call lists the remote again.

        Args:
            bucket: Bucket name
            prefix: Remote prefix as configured on the task

        Returns:
            Frozen set of object keys

        Raises:
            BucketNotFoundError: If the bucket does not exist
            RemoteListingError: If listing failed for any other reason
        """
        scope = listing_prefix(prefix)
        result = self.storage.list_keys(bucket, scope)

        if result.status is ProbeStatus.NOT_FOUND:
            logger.info(f"Bucket {bucket} does not exist in remote, skipping")
            raise BucketNotFoundError(bucket)
        if result.status is ProbeStatus.ERROR:
            detail = result.detail or "unknown error"
            logger.warning(f"Error listing s3://{bucket}/{scope}: {detail}")
            raise RemoteListingError(bucket, scope, result.detail)

        return result.keys
