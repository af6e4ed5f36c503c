"""Unit tests for configuration loading."""

import logging

import pytest

from cronsync.config import (
    BackupTask,
    Bucket,
    Config,
    default_config_path,
    load_config,
)
from cronsync.exceptions import ConfigError

VALID_CONFIG = """
credentials:
  applicationKeyId: key-id
  applicationKey: secret
remote:
  endpoint: https://s3.example.com
  region: us-west-004
concurrency: 3
buckets:
  - name: photos-backup
    tasks:
      - name: photos
        localPath: /data/photos
        remotePath: albums/2024
        schedule: "0 3 * * *"
      - name: docs
        local_path: /data/docs
        remote_path: docs
        schedule: "*/15 * * * *"
  - name: empty-bucket
"""


@pytest.fixture
def config_file(tmp_path):
    """Write a valid configuration file."""
    path = tmp_path / "config.yaml"
    path.write_text(VALID_CONFIG)
    return path


class TestLoadConfig:
    """Tests for load_config function."""

    def test_load_valid_config(self, config_file):
        """Test loading a complete configuration."""
        config = load_config(config_file)

        assert config.credentials.application_key_id == "key-id"
        assert config.credentials.application_key == "secret"
        assert config.remote.endpoint == "https://s3.example.com"
        assert config.remote.region == "us-west-004"
        assert config.concurrency == 3
        assert config.queue_size == 0
        assert config.overlap == "skip"
        assert [b.name for b in config.buckets] == ["photos-backup", "empty-bucket"]

    def test_tasks_in_order(self, config_file):
        """Test that tasks keep configuration order and accept both key styles."""
        config = load_config(config_file)
        tasks = config.buckets[0].tasks

        assert tasks[0] == BackupTask(
            name="photos",
            local_path="/data/photos",
            remote_path="albums/2024",
            schedule="0 3 * * *",
        )
        assert tasks[1].local_path == "/data/docs"
        assert tasks[1].remote_path == "docs"
        assert config.buckets[1].tasks == ()
        assert len(config.tasks) == 2

    def test_missing_file(self, tmp_path):
        """Test that an unreadable file raises ConfigError."""
        with pytest.raises(ConfigError, match="Cannot read"):
            load_config(tmp_path / "missing.yaml")

    def test_malformed_yaml(self, tmp_path):
        """Test that invalid YAML raises ConfigError."""
        path = tmp_path / "config.yaml"
        path.write_text("buckets: [unclosed")

        with pytest.raises(ConfigError, match="Malformed"):
            load_config(path)

    def test_empty_file(self, tmp_path):
        """Test that an empty document raises ConfigError."""
        path = tmp_path / "config.yaml"
        path.write_text("")

        with pytest.raises(ConfigError, match="empty"):
            load_config(path)

    def test_config_path_env(self, config_file, monkeypatch):
        """Test that CONFIG_PATH is used when no path is given."""
        monkeypatch.setenv("CONFIG_PATH", str(config_file))

        assert default_config_path() == config_file
        assert load_config().concurrency == 3

    def test_default_path(self, monkeypatch):
        """Test the default configuration path."""
        monkeypatch.delenv("CONFIG_PATH", raising=False)
        assert str(default_config_path()) == "config.yaml"


class TestConfigFromDict:
    """Tests for Config.from_dict validation."""

    def test_concurrency_defaults_with_warning(self, caplog):
        """Test that non-positive concurrency falls back to 5 with a warning."""
        with caplog.at_level(logging.WARNING, logger="cronsync.config"):
            config = Config.from_dict({"concurrency": 0, "buckets": []})

        assert config.concurrency == 5
        assert "defaulting to 5" in caplog.text

    def test_negative_concurrency(self):
        config = Config.from_dict({"concurrency": -2})
        assert config.concurrency == 5

    def test_missing_concurrency(self):
        config = Config.from_dict({"buckets": []})
        assert config.concurrency == 5

    def test_non_integer_concurrency(self):
        with pytest.raises(ConfigError, match="concurrency"):
            Config.from_dict({"concurrency": "many"})

    def test_not_a_mapping(self):
        with pytest.raises(ConfigError, match="expected a mapping"):
            Config.from_dict(["not", "a", "mapping"])

    def test_missing_local_path(self):
        """Test that a task without localPath is rejected."""
        data = {"buckets": [{"name": "b", "tasks": [{"schedule": "* * * * *"}]}]}

        with pytest.raises(ConfigError, match="localPath"):
            Config.from_dict(data)

    def test_missing_schedule(self):
        data = {"buckets": [{"name": "b", "tasks": [{"localPath": "/data"}]}]}

        with pytest.raises(ConfigError, match="schedule"):
            Config.from_dict(data)

    def test_missing_bucket_name(self):
        with pytest.raises(ConfigError, match="name"):
            Config.from_dict({"buckets": [{"tasks": []}]})

    def test_task_name_defaults_to_directory(self):
        """Test that an unnamed task is named after its local directory."""
        bucket = Bucket.from_dict(
            {
                "name": "b",
                "tasks": [{"localPath": "/data/photos", "schedule": "@daily"}],
            }
        )
        assert bucket.tasks[0].name == "photos"
        assert bucket.tasks[0].remote_path == ""

    def test_numeric_remote_path(self, tmp_path):
        """Test that a year-named prefix parsed as an int by YAML is kept."""
        path = tmp_path / "config.yaml"
        path.write_text(
            "buckets:\n"
            "  - name: b\n"
            "    tasks:\n"
            "      - localPath: /data/photos\n"
            "        remotePath: 2024\n"
            "        schedule: '0 3 * * *'\n"
        )

        config = load_config(path)

        assert config.buckets[0].tasks[0].remote_path == "2024"

    def test_remote_path_must_be_scalar(self):
        task = {"localPath": "/data", "remotePath": ["a"], "schedule": "@daily"}
        with pytest.raises(ConfigError, match="remotePath"):
            Bucket.from_dict({"name": "b", "tasks": [task]})

    def test_queue_size_and_overlap(self):
        config = Config.from_dict({"queueSize": 100, "overlap": "concurrent"})
        assert config.queue_size == 100
        assert config.overlap == "concurrent"

    def test_negative_queue_size(self):
        with pytest.raises(ConfigError, match="queueSize"):
            Config.from_dict({"queueSize": -1})

    def test_unknown_overlap(self):
        with pytest.raises(ConfigError, match="overlap"):
            Config.from_dict({"overlap": "queue"})

    def test_credentials_repr_hides_secret(self):
        config = Config.from_dict(
            {"credentials": {"applicationKeyId": "id", "applicationKey": "secret"}}
        )
        assert "secret" not in repr(config.credentials)
