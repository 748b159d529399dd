"""Local backups, remote sync and the orchestrator tying them to the watcher."""

from .backup_store import BackupStore
from .orchestrator import SyncOrchestrator, SyncState
from .remote_sync import GitHubRemoteStore, RemoteStore, RemoteSync, RetentionPolicy

__all__ = [
    "BackupStore",
    "GitHubRemoteStore",
    "RemoteStore",
    "RemoteSync",
    "RetentionPolicy",
    "SyncOrchestrator",
    "SyncState",
]
