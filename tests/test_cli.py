"""Tests for the command line interface."""

from unittest.mock import Mock, patch

import pytest
from click.testing import CliRunner

from cronsync.cli import main
from cronsync.exceptions import StorageError

CHECK_CONFIG = """
concurrency: 2
buckets:
  - name: photos
    tasks:
      - name: pics
        localPath: /data/pics
        schedule: "0 3 * * *"
"""

BROKEN_SCHEDULE_CONFIG = """
buckets:
  - name: photos
    tasks:
      - name: pics
        localPath: /data/pics
        schedule: "0 3 * * *"
      - name: docs
        localPath: /data/docs
        schedule: bogus
"""


@pytest.fixture
def runner():
    """Create a CLI runner for testing."""
    return CliRunner()


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(CHECK_CONFIG)
    return path


@pytest.fixture
def mock_app():
    app = Mock()
    app.run_once.return_value = (
        {"photos/pics": {"scanned": 3, "present": 1, "queued": 2, "aborted": False}},
        {"uploaded": 2, "open_failed": 0, "upload_failed": 0, "bytes": 2048},
    )
    return app


class TestMain:
    """Tests for the command group."""

    def test_help(self, runner):
        result = runner.invoke(main, ["--help"])

        assert result.exit_code == 0
        for command in ("run", "once", "check"):
            assert command in result.output

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_missing_config_file(self, runner, tmp_path):
        result = runner.invoke(main, ["-c", str(tmp_path / "nope.yaml"), "check"])

        assert result.exit_code == 1
        assert "Cannot read" in result.output

    def test_config_path_from_environment(self, runner, config_file):
        result = runner.invoke(main, ["check"], env={"CONFIG_PATH": str(config_file)})

        assert result.exit_code == 0
        assert "photos" in result.output


class TestCheckCommand:
    """Tests for the check command."""

    def test_valid_config(self, runner, config_file):
        result = runner.invoke(main, ["-c", str(config_file), "check"])

        assert result.exit_code == 0
        assert "photos" in result.output
        assert "pics" in result.output
        assert "Concurrency: 2" in result.output

    def test_invalid_schedule(self, runner, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(BROKEN_SCHEDULE_CONFIG)

        result = runner.invoke(main, ["-c", str(path), "check"])

        assert result.exit_code == 1
        assert "1 task(s) have an invalid schedule" in result.output

    def test_does_not_contact_remote(self, runner, config_file):
        with patch("cronsync.cli.Application") as application:
            runner.invoke(main, ["-c", str(config_file), "check"])

        application.from_config.assert_not_called()


class TestOnceCommand:
    """Tests for the once command."""

    def test_prints_summary(self, runner, config_file, mock_app):
        with patch("cronsync.cli.Application.from_config", return_value=mock_app):
            result = runner.invoke(main, ["-c", str(config_file), "once"])

        assert result.exit_code == 0
        assert "Uploaded 2 file(s)" in result.output
        assert "0 failed" in result.output
        mock_app.run_once.assert_called_once()

    def test_startup_failure(self, runner, config_file):
        with patch(
            "cronsync.cli.Application.from_config",
            side_effect=StorageError("Invalid endpoint"),
        ):
            result = runner.invoke(main, ["-c", str(config_file), "once"])

        assert result.exit_code == 1
        assert "Invalid endpoint" in result.output


class TestRunCommand:
    """Tests for the run command."""

    def test_runs_until_stopped(self, runner, config_file, mock_app):
        with patch("cronsync.cli.Application.from_config", return_value=mock_app):
            result = runner.invoke(main, ["-c", str(config_file), "run"])

        assert result.exit_code == 0
        mock_app.run_forever.assert_called_once()

    def test_startup_failure(self, runner, config_file):
        with patch(
            "cronsync.cli.Application.from_config",
            side_effect=StorageError("Invalid endpoint"),
        ):
            result = runner.invoke(main, ["-c", str(config_file), "run"])

        assert result.exit_code == 1
