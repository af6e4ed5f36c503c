"""Configuration model and YAML loader.

The configuration file describes the remote endpoint, the credentials used to
reach it, the upload concurrency and the buckets to mirror into::

    credentials:
      applicationKeyId: "..."
      applicationKey: "..."
    remote:
      endpoint: https://s3.us-west-004.backblazeb2.com
      region: us-west-004
    concurrency: 5
    buckets:
      - name: photos-backup
        tasks:
          - name: photos
            localPath: /data/photos
            remotePath: albums/2024
            schedule: "0 3 * * *"

Keys may be written in camelCase (as above) or snake_case.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from .exceptions import ConfigError
from .utils import CONFIG_PATH_ENV, DEFAULT_CONCURRENCY, DEFAULT_CONFIG_PATH

logger = logging.getLogger(__name__)

OVERLAP_SKIP = "skip"
OVERLAP_CONCURRENT = "concurrent"
OVERLAP_POLICIES = (OVERLAP_SKIP, OVERLAP_CONCURRENT)


def _get(data: dict, *names: str, default: Any = None) -> Any:
    """Return the first key of ``names`` present in ``data``."""
    for name in names:
        if name in data:
            return data[name]
    return default


def _require_str(data: dict, where: str, *names: str) -> str:
    value = _get(data, *names)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ConfigError(f"{where}: missing required field '{names[0]}'")
    if not isinstance(value, (str, int, float)):
        raise ConfigError(f"{where}: field '{names[0]}' must be a string")
    return str(value)


def _require_mapping(value: Any, where: str) -> dict:
    if not isinstance(value, dict):
        raise ConfigError(f"{where}: expected a mapping, got {type(value).__name__}")
    return value


@dataclass(frozen=True)
class BackupTask:
    """A local directory mirrored into a prefix of a bucket on a schedule."""

    name: str
    """Human readable task name (used in logs and job ids)"""

    local_path: str
    """Local directory to mirror"""

    remote_path: str
    """Object key prefix the directory is mirrored under"""

    schedule: str
    """Cron expression (5 fields, crontab syntax)"""

    @classmethod
    def from_dict(cls, data: dict, where: str = "task") -> "BackupTask":
        """Create a BackupTask from a configuration mapping.

        Args:
            data: Mapping with name, localPath, remotePath and schedule
            where: Location used in error messages

        Returns:
            BackupTask instance

        Raises:
            ConfigError: If a required field is missing or has the wrong type
        """
        data = _require_mapping(data, where)
        local_path = _require_str(data, where, "localPath", "local_path")
        schedule = _require_str(data, where, "schedule")
        remote_path = _get(data, "remotePath", "remote_path", default="")
        if remote_path is None:
            remote_path = ""
        if not isinstance(remote_path, (str, int, float)):
            raise ConfigError(f"{where}: field 'remotePath' must be a string")
        remote_path = str(remote_path)
        name = _get(data, "name") or Path(local_path).name or local_path
        return cls(
            name=str(name),
            local_path=local_path,
            remote_path=remote_path,
            schedule=schedule,
        )


@dataclass(frozen=True)
class Bucket:
    """A remote bucket and the tasks that mirror into it."""

    name: str
    tasks: tuple[BackupTask, ...] = ()

    @classmethod
    def from_dict(cls, data: dict, where: str = "bucket") -> "Bucket":
        data = _require_mapping(data, where)
        name = _require_str(data, where, "name")
        raw_tasks = _get(data, "tasks", default=[]) or []
        if not isinstance(raw_tasks, list):
            raise ConfigError(f"{where}: 'tasks' must be a list")
        tasks = tuple(
            BackupTask.from_dict(item, where=f"{where}.tasks[{i}]")
            for i, item in enumerate(raw_tasks)
        )
        return cls(name=name, tasks=tasks)


@dataclass(frozen=True)
class Credentials:
    """Static S3 credentials."""

    application_key_id: str = ""
    application_key: str = ""

    def __repr__(self) -> str:
        # Never leak the secret into logs
        return f"Credentials(application_key_id={self.application_key_id!r})"


@dataclass(frozen=True)
class Remote:
    """S3-compatible endpoint description."""

    endpoint: str = ""
    region: str = ""


@dataclass(frozen=True)
class Config:
    """Validated, immutable configuration loaded once at startup."""

    credentials: Credentials = field(default_factory=Credentials)
    remote: Remote = field(default_factory=Remote)
    concurrency: int = DEFAULT_CONCURRENCY
    """Number of upload workers"""

    queue_size: int = 0
    """Maximum number of pending uploads (0 means unbounded)"""

    overlap: str = OVERLAP_SKIP
    """What to do when a task fires while its previous pass is still running"""

    buckets: tuple[Bucket, ...] = ()

    @property
    def tasks(self) -> list[tuple[Bucket, BackupTask]]:
        """All (bucket, task) pairs in configuration order."""
        return [(bucket, task) for bucket in self.buckets for task in bucket.tasks]

    @classmethod
    def from_dict(cls, data: Any) -> "Config":
        """Create a Config from the parsed configuration tree.

        Args:
            data: Parsed YAML document

        Returns:
            Config instance

        Raises:
            ConfigError: If the document is structurally invalid
        """
        data = _require_mapping(data, "config")

        raw_credentials = _require_mapping(
            _get(data, "credentials", default={}) or {}, "credentials"
        )
        credentials = Credentials(
            application_key_id=str(
                _get(raw_credentials, "applicationKeyId", "application_key_id") or ""
            ),
            application_key=str(
                _get(raw_credentials, "applicationKey", "application_key") or ""
            ),
        )

        raw_remote = _require_mapping(_get(data, "remote", default={}) or {}, "remote")
        remote = Remote(
            endpoint=str(_get(raw_remote, "endpoint") or ""),
            region=str(_get(raw_remote, "region") or ""),
        )

        concurrency = _get(data, "concurrency", default=0)
        if isinstance(concurrency, bool) or not (
            concurrency is None or isinstance(concurrency, int)
        ):
            raise ConfigError("concurrency: must be an integer")
        if concurrency is None or concurrency <= 0:
            logger.warning(
                f"invalid concurrency ({concurrency}), "
                f"defaulting to {DEFAULT_CONCURRENCY}"
            )
            concurrency = DEFAULT_CONCURRENCY

        queue_size = _get(data, "queueSize", "queue_size", default=0) or 0
        if isinstance(queue_size, bool) or not isinstance(queue_size, int):
            raise ConfigError("queueSize: must be an integer")
        if queue_size < 0:
            raise ConfigError("queueSize: must be zero (unbounded) or positive")

        overlap = str(_get(data, "overlap", default=OVERLAP_SKIP) or OVERLAP_SKIP)
        if overlap not in OVERLAP_POLICIES:
            raise ConfigError(
                f"overlap: must be one of {', '.join(OVERLAP_POLICIES)}, "
                f"got {overlap!r}"
            )

        raw_buckets = _get(data, "buckets", default=[]) or []
        if not isinstance(raw_buckets, list):
            raise ConfigError("buckets: must be a list")
        buckets = tuple(
            Bucket.from_dict(item, where=f"buckets[{i}]")
            for i, item in enumerate(raw_buckets)
        )

        return cls(
            credentials=credentials,
            remote=remote,
            concurrency=concurrency,
            queue_size=queue_size,
            overlap=overlap,
            buckets=buckets,
        )


def default_config_path() -> Path:
    """Return the configuration path from CONFIG_PATH or the default."""
    return Path(os.environ.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH)


def load_config(path: Optional[Union[str, Path]] = None) -> Config:
    """Load and validate the YAML configuration file.

    Args:
        path: Path to the configuration file (defaults to CONFIG_PATH or
            config.yaml)

    Returns:
        Validated Config

    Raises:
        ConfigError: If the file cannot be read or is malformed
    """
    config_path = Path(path) if path is not None else default_config_path()

    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config file {config_path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Malformed config file {config_path}: {e}") from e

    if data is None:
        raise ConfigError(f"Config file {config_path} is empty")

    config = Config.from_dict(data)
    logger.debug(
        f"Loaded config from {config_path}: {len(config.buckets)} bucket(s), "
        f"{len(config.tasks)} task(s), concurrency={config.concurrency}"
    )
    return config
