"""Utility functions and constants for cronsync."""

import os
from typing import Optional

# =============================================================================
# Constants
# =============================================================================

# Part size for multipart uploads handled by boto3's managed transfer (25 MB)
DEFAULT_CHUNK_SIZE: int = 25 * 1024 * 1024

# Threshold above which boto3 switches to a multipart upload (30 MB)
DEFAULT_MULTIPART_THRESHOLD: int = 30 * 1024 * 1024

# Number of upload workers when the configured value is missing or invalid
DEFAULT_CONCURRENCY: int = 5

# Configuration file used when neither --config nor CONFIG_PATH is given
DEFAULT_CONFIG_PATH: str = "config.yaml"
CONFIG_PATH_ENV: str = "CONFIG_PATH"


# =============================================================================
# Object key utilities
# =============================================================================


def join_key(prefix: Optional[str], *parts: str) -> str:
    """Join a remote prefix and path segments into an object key.

    Backslashes in the configured prefix are converted to forward slashes.
    The other parts must already use forward slashes (see
    :func:`relative_posix_path`); a backslash there is part of a file name
    and is kept. Empty segments are dropped and no duplicate or leading
    separators are produced.

    Args:
        prefix: Remote prefix (may be empty or None)
        *parts: Additional path segments, typically a relative file path

    Returns:
        Slash separated object key

    Examples:
        >>> join_key("albums/2024", "trip/img.jpg")
        'albums/2024/trip/img.jpg'
        >>> join_key("/albums\\\\2024/", "trip/img.jpg")
        'albums/2024/trip/img.jpg'
        >>> join_key("", "img.jpg")
        'img.jpg'
    """
    segments: list[str] = []
    for value in ((prefix or "").replace("\\", "/"), *parts):
        for segment in value.split("/"):
            if segment and segment != ".":
                segments.append(segment)
    return "/".join(segments)


def listing_prefix(prefix: Optional[str]) -> str:
    """Return the prefix used to list the keys of a remote folder.

    A non-empty prefix gets a trailing slash so that ``photos`` does not
    also match ``photos-old/...``.

    Args:
        prefix: Remote prefix as configured

    Returns:
        Normalized listing prefix ("" for the bucket root)
    """
    normalized = join_key(prefix)
    return f"{normalized}/" if normalized else ""


def relative_posix_path(path: str, root: str) -> str:
    """Return ``path`` relative to ``root`` using forward slashes."""
    return os.path.relpath(path, root).replace(os.sep, "/")


# =============================================================================
# Size formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"
