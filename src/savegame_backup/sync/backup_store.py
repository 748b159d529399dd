"""Timestamped local backups of the save file."""

import glob
import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

from ..errors import BackupNotFoundError, TransientIOError
from ..models import BackupRecord
from ..utils.file_utils import FileHelper
from ..utils.logging import LoggerSink, LogSink
from ..utils.timestamps import backup_label, format_timestamp, parse_timestamp

logger = logging.getLogger(__name__)


class BackupStore:
    """Create, list and restore backups named ``{base}_{yyyy.MM.dd_HH.mm}{ext}``."""

    def __init__(
        self,
        backup_directory: Path,
        file_base_name: str,
        extension: str = ".ark",
        log_sink: Optional[LogSink] = None,
        clock: Callable[[], datetime] = datetime.now
    ):
        """Initialize backup store.

        Args:
            backup_directory: Directory holding the backup copies
            file_base_name: Save file name without extension (the map name)
            extension: Save file extension, including the dot
            log_sink: Sink for user-facing log entries
            clock: Returns the current local time
        """
        self.backup_directory = Path(backup_directory)
        self.file_base_name = file_base_name
        self.extension = extension
        self.log_sink = log_sink or LoggerSink(logger)
        self._clock = clock

    def backup_path_for(self, timestamp: str) -> Path:
        """Path of the backup file for a given timestamp."""
        return self.backup_directory / f"{self.file_base_name}_{timestamp}{self.extension}"

    def create_backup(self, source_file: Path) -> BackupRecord:
        """Copy the source file into the backup directory.

        A backup taken in the same minute as an existing one replaces it.

        Args:
            source_file: The live save file

        Returns:
            Record describing the new backup

        Raises:
            TransientIOError: If the copy fails
        """
        now = self._clock()
        timestamp = format_timestamp(now)
        backup_file = self.backup_path_for(timestamp)

        try:
            FileHelper.copy_file(Path(source_file), backup_file)
        except OSError as e:
            self.log_sink.error(f"Error copying file {source_file}: {e}")
            raise TransientIOError(f"Could not back up {source_file}: {e}") from e

        self.log_sink.success(f"Backup created: {backup_file}")
        return BackupRecord(
            timestamp=timestamp,
            display_label=backup_label(timestamp, now),
            file_path=backup_file,
            created_at=parse_timestamp(timestamp),
        )

    def list_backups(self) -> List[BackupRecord]:
        """List backups in the backup directory, newest first.

        Files whose timestamp cannot be parsed are kept with an
        "unknown time" label.
        """
        if not self.backup_directory.is_dir():
            return []

        now = self._clock()
        prefix = f"{self.file_base_name}_"
        pattern = glob.escape(prefix) + "*" + glob.escape(self.extension)

        records = []
        for backup_file in self.backup_directory.glob(pattern):
            if not backup_file.is_file():
                continue
            timestamp = backup_file.name[len(prefix):len(backup_file.name) - len(self.extension)]
            records.append(BackupRecord(
                timestamp=timestamp,
                display_label=backup_label(timestamp, now),
                file_path=backup_file,
                created_at=parse_timestamp(timestamp),
            ))

        records.sort(key=lambda record: record.timestamp, reverse=True)
        return records

    def latest_backup(self) -> Optional[BackupRecord]:
        backups = self.list_backups()
        return backups[0] if backups else None

    def restore_backup(self, timestamp: str, destination_directory: Path) -> Path:
        """Copy a backup over the live save file.

        The caller should pause change detection around this call.

        Args:
            timestamp: Timestamp of the backup to restore
            destination_directory: Directory containing the live save file

        Returns:
            Path of the overwritten live file

        Raises:
            ValueError: If the timestamp is empty
            BackupNotFoundError: If no backup exists for the timestamp
        """
        if not timestamp:
            raise ValueError("Invalid timestamp")

        backup_file = self.backup_path_for(timestamp)
        if not backup_file.is_file():
            raise BackupNotFoundError(timestamp, str(backup_file))

        destination = Path(destination_directory) / f"{self.file_base_name}{self.extension}"
        try:
            FileHelper.copy_file(backup_file, destination)
        except OSError as e:
            raise TransientIOError(f"Could not restore {backup_file}: {e}") from e

        self.log_sink.success(f"Restored backup {timestamp} to {destination}")
        return destination
