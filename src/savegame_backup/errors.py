"""Exception hierarchy for backup, restore and remote sync operations."""

from typing import Optional


class SaveBackupError(Exception):
    """Base class for all errors raised by the backup tool."""


class ConfigurationError(SaveBackupError):
    """Settings are incomplete for the requested operation."""


class BackupNotFoundError(SaveBackupError, FileNotFoundError):
    """No backup file exists for the requested timestamp."""

    def __init__(self, timestamp: str, path: Optional[str] = None):
        self.timestamp = timestamp
        self.path = path
        message = f"Backup not found for timestamp {timestamp}"
        if path:
            message += f" ({path})"
        super().__init__(message)


class TransientIOError(SaveBackupError):
    """Copy, pull or clone failed; the next cycle may succeed."""


class RemoteSyncError(SaveBackupError):
    """Base class for remote repository failures."""


class AuthFailureError(RemoteSyncError):
    """The remote access token was rejected."""


class UninitializedError(RemoteSyncError):
    """A push was attempted before the remote repository was initialized."""


class NonFastForwardError(RemoteSyncError):
    """The remote rejected the push because its history diverged."""


class SizeCeilingExceeded(RemoteSyncError):
    """The local clone grew beyond the retention ceiling."""

    def __init__(self, size_bytes: int, ceiling_bytes: int):
        self.size_bytes = size_bytes
        self.ceiling_bytes = ceiling_bytes
        super().__init__(
            f"Repository size {size_bytes} bytes exceeds ceiling of {ceiling_bytes} bytes"
        )
