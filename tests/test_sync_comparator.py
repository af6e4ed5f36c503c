"""Tests for the FileComparator class."""

from pathlib import Path

from cronsync.sync.comparator import FileComparator
from cronsync.sync.operations import UploadRequest
from cronsync.sync.scanner import LocalFile


def _local(relative_path: str, prefix: str = "albums") -> LocalFile:
    """Create a LocalFile for testing."""
    return LocalFile(
        path=Path(f"/data/{relative_path}"),
        relative_path=relative_path,
        key=f"{prefix}/{relative_path}",
    )


class TestCompare:
    """Tests for existence-only comparison."""

    def test_missing_files_become_requests(self):
        """Files absent remotely produce exactly one request each."""
        comparator = FileComparator(bucket="photos")
        local_files = [_local("a.jpg"), _local("b.jpg")]

        requests = list(comparator.compare(frozenset(), local_files))

        assert requests == [
            UploadRequest(
                path=Path("/data/a.jpg"), key="albums/a.jpg", bucket="photos"
            ),
            UploadRequest(
                path=Path("/data/b.jpg"), key="albums/b.jpg", bucket="photos"
            ),
        ]

    def test_present_files_are_skipped(self):
        comparator = FileComparator(bucket="photos")
        local_files = [_local("a.jpg"), _local("b.jpg"), _local("c.jpg")]

        requests = list(
            comparator.compare(frozenset({"albums/a.jpg", "albums/c.jpg"}), local_files)
        )

        assert [r.key for r in requests] == ["albums/b.jpg"]
        assert comparator.stats.to_dict() == {"scanned": 3, "missing": 1, "present": 2}

    def test_traversal_order_preserved(self):
        """Requests follow the order of the local scan, unsorted."""
        comparator = FileComparator(bucket="photos")
        local_files = [_local("z.jpg"), _local("a.jpg"), _local("m.jpg")]

        requests = list(comparator.compare(frozenset(), local_files))

        assert [r.key for r in requests] == [
            "albums/z.jpg",
            "albums/a.jpg",
            "albums/m.jpg",
        ]

    def test_second_pass_is_idempotent(self):
        """After every key is uploaded, a second pass produces nothing."""
        local_files = [_local("a.jpg"), _local("sub/b.jpg")]

        first = list(FileComparator(bucket="photos").compare(frozenset(), local_files))
        remote_after_first = frozenset(r.key for r in first)
        second = list(
            FileComparator(bucket="photos").compare(remote_after_first, local_files)
        )

        assert len(first) == 2
        assert second == []

    def test_remote_only_keys_ignored(self):
        """Keys that exist only remotely never produce anything."""
        comparator = FileComparator(bucket="photos")

        requests = list(
            comparator.compare(frozenset({"albums/old.jpg"}), [_local("new.jpg")])
        )

        assert [r.key for r in requests] == ["albums/new.jpg"]

    def test_compare_is_lazy(self):
        """Local files are consumed only as requests are pulled."""
        consumed = []

        def files():
            for name in ("a.jpg", "b.jpg"):
                consumed.append(name)
                yield _local(name)

        requests = FileComparator(bucket="photos").compare(frozenset(), files())
        next(requests)

        assert consumed == ["a.jpg"]
