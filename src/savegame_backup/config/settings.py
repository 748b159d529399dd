"""Configuration settings for the save-game backup tool."""

import logging
import os
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from ..errors import ConfigurationError
from ..models import WatchTarget
from ..watch.detector import POLL_INTERVAL, DetectorType

logger = logging.getLogger(__name__)

TOKEN_ENV_VARS = ('SAVEGAME_BACKUP_REMOTE_TOKEN', 'GITHUB_TOKEN')


class BackupSettings(BaseModel):
    """User settings: where the save lives, where backups go, remote token."""
    save_path: Optional[Path] = None
    backup_path: Optional[Path] = None
    map_name: Optional[str] = None
    auto_start: bool = False
    remote_token: Optional[str] = None

    save_extension: str = ".ark"
    detector: DetectorType = DetectorType.EVENTS
    poll_interval: float = POLL_INTERVAL
    clone_root: Path = Field(default_factory=Path.cwd)

    @field_validator('save_extension')
    @classmethod
    def validate_extension(cls, v):
        if not v:
            raise ValueError('save_extension must not be empty')
        return v if v.startswith('.') else f'.{v}'

    @field_validator('poll_interval')
    @classmethod
    def validate_poll_interval(cls, v):
        if v <= 0:
            raise ValueError('poll_interval must be positive')
        return v

    @field_validator('map_name', 'remote_token')
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @classmethod
    def from_yaml(cls, config_path: Union[str, Path]) -> "BackupSettings":
        """Load settings from a YAML file.

        A missing or unreadable file yields default settings.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            return cls()

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config_data = yaml.safe_load(f) or {}
            return cls(**config_data)
        except (OSError, yaml.YAMLError, ValidationError, TypeError) as e:
            logger.error(f"Error loading config {config_path}: {e}")
            return cls()

    def to_yaml(self, config_path: Union[str, Path]) -> None:
        """Save settings to a YAML file."""
        config_path = Path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(self.model_dump(mode='json', exclude_none=True), f,
                           default_flow_style=False, indent=2)

    def with_env(self) -> "BackupSettings":
        """Copy of these settings with the remote token taken from the environment, if set."""
        for var in TOKEN_ENV_VARS:
            token = os.getenv(var)
            if token:
                return self.model_copy(update={'remote_token': token})
        return self

    def is_complete(self) -> bool:
        """Whether save path, backup path and map name are all set."""
        return bool(self.save_path and self.backup_path and self.map_name)

    def watch_target(self) -> WatchTarget:
        """Build the watch target for these settings.

        Raises:
            ConfigurationError: If the settings are incomplete
        """
        if not self.is_complete():
            raise ConfigurationError(
                "Please provide a save path and backup path, and ensure a map name is detected."
            )
        return WatchTarget(
            source_directory=self.save_path,
            file_base_name=self.map_name,
            backup_directory=self.backup_path,
            extension=self.save_extension,
        )


def detect_map_name(save_path: Path, extension: str = ".ark") -> str:
    """Detect the map name from the save folder.

    The map's own save has the shortest name among the save files; the others
    are per-player or per-tribe files.

    Raises:
        ConfigurationError: If the folder contains no save files
    """
    save_path = Path(save_path)
    if not save_path.is_dir():
        raise ConfigurationError(f"Save path does not exist: {save_path}")

    candidates = [p for p in save_path.glob(f"*{extension}") if p.is_file()]
    if not candidates:
        raise ConfigurationError(f"No {extension} files found in {save_path}")

    shortest = min(candidates, key=lambda p: (len(p.name), p.name))
    return shortest.stem


def default_backup_path(map_name: str, base: Optional[Path] = None) -> Path:
    """Default backup folder ``{base}/{map_name}-backup``, created if missing."""
    backup_path = Path(base or Path.cwd()) / f"{map_name}-backup"
    backup_path.mkdir(parents=True, exist_ok=True)
    return backup_path
