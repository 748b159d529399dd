"""Wires change detection to local backups and remote sync."""

import logging
import threading
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

from ..errors import SaveBackupError
from ..models import BackupRecord, WatchTarget
from ..utils.file_utils import FileHelper
from ..utils.logging import LoggerSink, LogSink
from ..watch.detector import ChangeDetector, DetectorType, create_detector
from .backup_store import BackupStore
from .remote_sync import RemoteSync

logger = logging.getLogger(__name__)

RemoteFactory = Callable[[str], RemoteSync]
BackupListener = Callable[[BackupRecord], None]


class SyncState(str, Enum):
    """Lifecycle state of the orchestrator."""
    STOPPED = "stopped"
    WATCHING = "watching"
    WATCHING_WITH_REMOTE = "watching_with_remote"


class SyncOrchestrator:
    """Owns one watch target's detector, backup store and remote sync.

    Every accepted change produces a local backup; when remote sync is
    established the save folder is pushed afterwards. Cycles never overlap.
    """

    def __init__(
        self,
        target: WatchTarget,
        detector_factory: Callable[[Callable[[Path], None]], ChangeDetector],
        backup_store: Optional[BackupStore] = None,
        remote_factory: Optional[RemoteFactory] = None,
        log_sink: Optional[LogSink] = None
    ):
        """Initialize orchestrator.

        Args:
            target: File being protected
            detector_factory: Builds a detector given the change callback
            backup_store: Store for local backups (defaults to one built from the target)
            remote_factory: Builds a ``RemoteSync`` from an access token
            log_sink: Sink for user-facing log entries
        """
        self.target = target
        self.log_sink = log_sink or LoggerSink(logger)
        self.backup_store = backup_store or BackupStore(
            target.backup_directory, target.file_base_name, target.extension, self.log_sink
        )
        self.detector = detector_factory(self.handle_change)
        self.remote_factory = remote_factory
        self.remote_sync: Optional[RemoteSync] = None
        self.state = SyncState.STOPPED
        self._listeners: List[BackupListener] = []
        self._cycle_lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings, log_sink: Optional[LogSink] = None) -> "SyncOrchestrator":
        """Build an orchestrator from ``BackupSettings``."""
        target = settings.watch_target()
        sink = log_sink or LoggerSink(logger)

        def detector_factory(callback):
            return create_detector(
                DetectorType(settings.detector), callback, sink, poll_interval=settings.poll_interval
            )

        def remote_factory(token: str) -> RemoteSync:
            return RemoteSync.for_github(target.file_base_name, token, settings.clone_root, log_sink=sink)

        return cls(target, detector_factory, remote_factory=remote_factory, log_sink=sink)

    @property
    def is_running(self) -> bool:
        return self.state != SyncState.STOPPED

    def add_listener(self, listener: BackupListener) -> None:
        """Register a callback receiving each completed backup."""
        self._listeners.append(listener)

    def start(self, remote_token: Optional[str] = None) -> SyncState:
        """Start watching and, if a token is given, set up remote sync.

        Remote setup failures leave the orchestrator watching with local
        backups only.
        """
        if self.is_running:
            self.log_sink.warning("Monitoring is already running.")
            return self.state

        self.target.backup_directory.mkdir(parents=True, exist_ok=True)
        self.detector.start(self.target)
        self.state = SyncState.WATCHING
        self.log_sink.success("Monitoring started.")

        if remote_token and self.remote_factory is not None:
            try:
                remote_sync = self.remote_factory(remote_token)
                if remote_sync.initialize():
                    self.remote_sync = remote_sync
                    self.state = SyncState.WATCHING_WITH_REMOTE
            except SaveBackupError as e:
                self.log_sink.error(f"Couldn't initialize remote sync! Error: {e}")

            if self.state != SyncState.WATCHING_WITH_REMOTE:
                self.log_sink.warning("Remote sync unavailable; continuing with local backups only.")

        return self.state

    def stop(self) -> None:
        """Stop watching. Remote state is left as it is."""
        if not self.is_running:
            return
        self.detector.stop()
        self.state = SyncState.STOPPED
        self.log_sink.warning("Monitoring stopped.")

    def pause(self) -> None:
        self.detector.pause()

    def resume(self) -> None:
        self.detector.resume()

    def list_backups(self) -> List[BackupRecord]:
        return self.backup_store.list_backups()

    def restore_backup(self, timestamp: str) -> Path:
        """Restore a backup over the live file with detection paused."""
        self.pause()
        try:
            restored = self.backup_store.restore_backup(timestamp, self.target.source_directory)
        except SaveBackupError as e:
            self.log_sink.error(f"Error loading backup: {e}")
            raise
        finally:
            self.resume()
        self.log_sink.success(f"Loaded backup: {timestamp}")
        return restored

    def handle_change(self, changed_file: Path) -> Optional[BackupRecord]:
        """Run one backup-then-push cycle for a detected change."""
        with self._cycle_lock:
            if not self.is_running:
                return None

            try:
                record = self.backup_store.create_backup(changed_file)
            except SaveBackupError as e:
                self.log_sink.error(f"Backup failed: {e}")
                return None

            if self.state == SyncState.WATCHING_WITH_REMOTE and self.remote_sync is not None:
                try:
                    self.remote_sync.push(FileHelper.list_files(self.target.source_directory))
                except SaveBackupError as e:
                    # Next change retries independently
                    self.log_sink.error(f"Remote push failed: {e}")

            for listener in list(self._listeners):
                try:
                    listener(record)
                except Exception as e:
                    self.log_sink.error(f"Backup listener failed: {e}")
            return record
