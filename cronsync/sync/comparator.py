"""Existence-based comparison of local files against the remote index."""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from .operations import UploadRequest
from .scanner import LocalFile


@dataclass
class CompareStats:
    """Counters collected while comparing one pass."""

    scanned: int = 0
    """Local files seen"""

    missing: int = 0
    """Local files whose key is absent remotely"""

    present: int = 0
    """Local files whose key already exists remotely"""

    def to_dict(self) -> dict:
        return {
            "scanned": self.scanned,
            "missing": self.missing,
            "present": self.present,
        }


@dataclass
class FileComparator:
    """Decides which local files must be uploaded.

    Only the existence of the key is compared. A file whose key is already
    present remotely is never uploaded again, even if its content changed.
    """

    bucket: str
    """Destination bucket of the produced requests"""

    stats: CompareStats = field(default_factory=CompareStats)

    def compare(
        self, remote_keys: frozenset, local_files: Iterable[LocalFile]
    ) -> Iterator[UploadRequest]:
        """Yield an upload request for every local file missing remotely.

        Args:
            remote_keys: Keys known to exist at the start of the pass
            local_files: Files produced by the local scan

        Yields:
            UploadRequest in the order the local files were produced
        """
        for local_file in local_files:
            self.stats.scanned += 1
            if local_file.key in remote_keys:
                self.stats.present += 1
                continue

            self.stats.missing += 1
            yield UploadRequest(
                path=local_file.path, key=local_file.key, bucket=self.bucket
            )
