"""Value types shared by the watcher, backup store and remote sync."""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class WatchTarget:
    """Identifies the save file being protected and where its backups go."""
    source_directory: Path
    file_base_name: str
    backup_directory: Path
    extension: str = ".ark"

    @property
    def file_name(self) -> str:
        return f"{self.file_base_name}{self.extension}"

    @property
    def live_file(self) -> Path:
        """Absolute path of the monitored save file."""
        return Path(self.source_directory) / self.file_name


@dataclass(frozen=True)
class BackupRecord:
    """A backup copy found in the backup directory."""
    timestamp: str  # yyyy.MM.dd_HH.mm, as embedded in the file name
    display_label: str
    file_path: Path
    created_at: Optional[datetime] = None  # None when the timestamp could not be parsed


@dataclass
class RemoteRepoHandle:
    """State of the remote repository and its local clone."""
    local_clone_path: Path
    remote_identity: str  # clone URL of the remote repository
    owner_login: str
    size_bytes: int = 0
