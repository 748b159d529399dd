"""Tests for settings loading, map detection and default paths."""

from pathlib import Path

import pytest

from savegame_backup.config.settings import BackupSettings, default_backup_path, detect_map_name
from savegame_backup.errors import ConfigurationError
from savegame_backup.watch.detector import DetectorType


def test_defaults():
    settings = BackupSettings()
    assert settings.save_extension == ".ark"
    assert settings.detector == DetectorType.EVENTS
    assert settings.poll_interval == 30
    assert not settings.auto_start
    assert not settings.is_complete()


def test_yaml_round_trip(tmp_path, save_dir):
    config_path = tmp_path / "config" / "config.yaml"
    settings = BackupSettings(
        save_path=save_dir,
        backup_path=tmp_path / "backups",
        map_name="TheIsland",
        auto_start=True,
        detector="polling",
        clone_root=tmp_path,
    )

    settings.to_yaml(config_path)
    loaded = BackupSettings.from_yaml(config_path)

    assert loaded == settings
    assert "polling" in config_path.read_text()


def test_missing_file_gives_defaults(tmp_path):
    assert BackupSettings.from_yaml(tmp_path / "nope.yaml").map_name is None


def test_invalid_file_gives_defaults(tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("poll_interval: -5\n")

    assert BackupSettings.from_yaml(config_path).poll_interval == 30


def test_extension_normalized():
    assert BackupSettings(save_extension="sav").save_extension == ".sav"


def test_blank_token_is_none():
    assert BackupSettings(remote_token="  ").remote_token is None


def test_token_from_environment(monkeypatch):
    monkeypatch.delenv("SAVEGAME_BACKUP_REMOTE_TOKEN", raising=False)
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_env")

    assert BackupSettings(remote_token="ghp_file").with_env().remote_token == "ghp_env"


def test_token_kept_without_environment(monkeypatch):
    monkeypatch.delenv("SAVEGAME_BACKUP_REMOTE_TOKEN", raising=False)
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)

    assert BackupSettings(remote_token="ghp_file").with_env().remote_token == "ghp_file"


def test_watch_target(tmp_path, save_dir):
    settings = BackupSettings(save_path=save_dir, backup_path=tmp_path / "b", map_name="TheIsland")

    target = settings.watch_target()

    assert target.live_file == save_dir / "TheIsland.ark"
    assert target.backup_directory == tmp_path / "b"


def test_watch_target_requires_complete_settings(save_dir):
    with pytest.raises(ConfigurationError):
        BackupSettings(save_path=save_dir).watch_target()


def test_detect_map_name_picks_shortest(save_dir):
    (save_dir / "TheIsland_AntiCorruptionBackup.ark").write_bytes(b"x")
    assert detect_map_name(save_dir) == "TheIsland"


def test_detect_map_name_without_saves(tmp_path):
    with pytest.raises(ConfigurationError):
        detect_map_name(tmp_path)


def test_default_backup_path_created(tmp_path):
    path = default_backup_path("TheIsland", tmp_path)
    assert path == tmp_path / "TheIsland-backup"
    assert path.is_dir()
