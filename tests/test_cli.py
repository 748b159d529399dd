"""Tests for the command-line interface."""

from datetime import datetime
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from savegame_backup.cli import cli
from savegame_backup.config.settings import BackupSettings
from savegame_backup.errors import NonFastForwardError, TransientIOError
from savegame_backup.utils.timestamps import format_timestamp


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_path(tmp_path, save_dir, monkeypatch):
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.delenv("SAVEGAME_BACKUP_REMOTE_TOKEN", raising=False)
    path = tmp_path / "config.yaml"
    BackupSettings(
        save_path=save_dir,
        backup_path=tmp_path / "backups",
        map_name="TheIsland",
        clone_root=tmp_path,
    ).to_yaml(path)
    return path


def invoke(runner, tmp_path, *args):
    return runner.invoke(cli, ["--log-file", str(tmp_path / "logs" / "test.log"), *args])


def make_backup(tmp_path, timestamp, content=b"backup"):
    backups = tmp_path / "backups"
    backups.mkdir(exist_ok=True)
    path = backups / f"TheIsland_{timestamp}.ark"
    path.write_bytes(content)
    return path


def test_init_writes_sample(runner, tmp_path):
    config = tmp_path / "new" / "config.yaml"
    result = invoke(runner, tmp_path, "init", "--config", str(config))

    assert result.exit_code == 0
    assert BackupSettings.from_yaml(config).map_name == "TheIsland"


def test_detect_saves_settings(runner, tmp_path, save_dir):
    config = tmp_path / "config.yaml"
    result = invoke(runner, tmp_path, "detect", "--config", str(config), str(save_dir),
                    "--backup-path", str(tmp_path / "bk"))

    assert result.exit_code == 0, result.output
    settings = BackupSettings.from_yaml(config)
    assert settings.map_name == "TheIsland"
    assert settings.backup_path == (tmp_path / "bk").resolve()


def test_list_shows_backups_newest_first(runner, tmp_path, config_path):
    make_backup(tmp_path, "2024.01.01_10.00")
    make_backup(tmp_path, format_timestamp(datetime.now()))

    result = invoke(runner, tmp_path, "list", "--config", str(config_path))

    assert result.exit_code == 0, result.output
    assert "Backup just now" in result.output
    assert result.output.index("Backup just now") < result.output.index("2024.01.01_10.00")


def test_list_without_backups(runner, tmp_path, config_path):
    result = invoke(runner, tmp_path, "list", "--config", str(config_path))
    assert "No backups available" in result.output


def test_restore_latest(runner, tmp_path, config_path, save_dir):
    make_backup(tmp_path, "2024.01.01_10.00", b"older")
    make_backup(tmp_path, "2024.01.02_10.00", b"newer")

    result = invoke(runner, tmp_path, "restore", "--config", str(config_path), "--latest")

    assert result.exit_code == 0, result.output
    assert (save_dir / "TheIsland.ark").read_bytes() == b"newer"


def test_restore_unknown_timestamp_fails(runner, tmp_path, config_path, save_dir):
    result = invoke(runner, tmp_path, "restore", "--config", str(config_path), "1999.01.01_00.00")

    assert result.exit_code == 1
    assert (save_dir / "TheIsland.ark").read_bytes() == b"world-state-v1"


def test_push_requires_token(runner, tmp_path, config_path):
    result = invoke(runner, tmp_path, "push", "--config", str(config_path))
    assert result.exit_code == 1
    assert "No remote token" in result.output


def test_push_escalates_non_fast_forward(runner, tmp_path, config_path, monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_token")
    with patch("savegame_backup.cli.RemoteSync") as remote_cls:
        remote = remote_cls.for_github.return_value
        remote.initialize.return_value = True
        remote.push.side_effect = NonFastForwardError("diverged")

        result = invoke(runner, tmp_path, "push", "--config", str(config_path))

    assert result.exit_code == 1
    assert "diverged" in result.output


def test_push_escalates_auth_failure(runner, tmp_path, config_path, monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_token")
    with patch("savegame_backup.cli.RemoteSync") as remote_cls:
        remote_cls.for_github.return_value.initialize.return_value = False

        result = invoke(runner, tmp_path, "push", "--config", str(config_path))

    assert result.exit_code == 1


def test_watch_auto_respects_setting(runner, tmp_path, config_path):
    result = invoke(runner, tmp_path, "watch", "--config", str(config_path), "--auto")

    assert result.exit_code == 0
    assert "not starting" in result.output


def test_status(runner, tmp_path, config_path):
    make_backup(tmp_path, "2024.01.01_10.00")

    result = invoke(runner, tmp_path, "status", "--config", str(config_path))

    assert result.exit_code == 0, result.output
    assert "TheIsland" in result.output
    assert "Disabled" in result.output


def test_push_reports_git_failure(runner, tmp_path, config_path, monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_token")
    with patch("savegame_backup.cli.RemoteSync") as remote_cls:
        remote = remote_cls.for_github.return_value
        remote.initialize.return_value = True
        remote.push.side_effect = TransientIOError("Commit failed: index.lock exists")

        result = invoke(runner, tmp_path, "push", "--config", str(config_path))

    assert result.exit_code == 1
    assert "index.lock" in result.output
