"""Change detection for the monitored save file.

Two interchangeable strategies share the ``ChangeDetector`` contract:
``EventChangeDetector`` reacts to filesystem notifications (watchdog) with a
debounce window and settle delay, ``PollingChangeDetector`` compares the
file's modification time on a fixed interval.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Tuple

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..models import WatchTarget
from ..utils.logging import LoggerSink, LogSink

logger = logging.getLogger(__name__)

DEBOUNCE_WINDOW = 1.0  # seconds
SETTLE_DELAY = 0.5  # seconds
POLL_INTERVAL = 30.0  # seconds

ChangeCallback = Callable[[Path], None]


class DetectorType(str, Enum):
    """Available change detection strategies."""
    EVENTS = "events"
    POLLING = "polling"


class Debouncer:
    """Accepts a signal only if the previous accepted one is outside the window."""

    def __init__(self, window: float = DEBOUNCE_WINDOW, clock: Callable[[], float] = time.monotonic):
        self.window = window
        self._clock = clock
        self._last_accepted: Optional[float] = None
        self._lock = threading.Lock()

    @property
    def last_accepted(self) -> Optional[float]:
        return self._last_accepted

    def accept(self) -> bool:
        """Register a raw signal; True if it starts a new burst."""
        with self._lock:
            now = self._clock()
            if self._last_accepted is not None and now - self._last_accepted < self.window:
                return False
            self._last_accepted = now
            return True


class ChangeDetector(ABC):
    """Watches one file and reports debounced changes to a callback.

    Callbacks are serialized: at most one runs at a time, none run while
    paused, and none start after ``stop()`` has returned.
    """

    def __init__(self, on_change: ChangeCallback, log_sink: Optional[LogSink] = None):
        self.on_change = on_change
        self.log_sink = log_sink or LoggerSink(logger)
        self.target: Optional[WatchTarget] = None
        self._stop_event = threading.Event()
        self._dispatch_lock = threading.Lock()
        self._running = False
        self._paused = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_paused(self) -> bool:
        return self._paused

    def start(self, target: WatchTarget) -> None:
        """Begin watching the target's live file. No-op if already running."""
        if self._running:
            return

        self.target = target
        self._stop_event.clear()
        self._paused = False
        self._running = True
        try:
            self._start_watching(target)
        except Exception:
            self._running = False
            raise
        logger.debug(f"Started {self.__class__.__name__} for {target.live_file}")

    def stop(self) -> None:
        """Stop watching. Safe to call repeatedly."""
        if not self._running:
            return

        self._stop_event.set()
        # Wait for an in-flight callback so nothing runs after stop() returns
        if not self._in_worker_thread():
            with self._dispatch_lock:
                self._running = False
        else:
            self._running = False
        self._stop_watching()
        logger.debug(f"Stopped {self.__class__.__name__}")

    def pause(self) -> None:
        """Suspend notifications, keeping the change baseline."""
        self._paused = True

    def resume(self) -> None:
        """Resume notifications after ``pause()``."""
        self._paused = False

    def _should_dispatch(self) -> bool:
        return self._running and not self._paused and not self._stop_event.is_set()

    def _dispatch(self, path: Path) -> bool:
        """Run the callback for an accepted change.

        Returns:
            True if the callback ran
        """
        with self._dispatch_lock:
            if not self._should_dispatch():
                return False
            try:
                self.on_change(path)
            except Exception as e:
                self.log_sink.error(f"Error handling change of {path}: {e}")
            return True

    def _in_worker_thread(self) -> bool:
        return False

    @abstractmethod
    def _start_watching(self, target: WatchTarget) -> None:
        """Start the underlying watch or poll loop."""

    @abstractmethod
    def _stop_watching(self) -> None:
        """Release the underlying watch or poll loop."""


class _SaveFileHandler(FileSystemEventHandler):
    """Forwards events for one file name to the detector."""

    def __init__(self, detector: "EventChangeDetector", file_name: str):
        self.detector = detector
        self.file_name = file_name

    def _matches(self, path) -> bool:
        if isinstance(path, bytes):
            path = path.decode()
        return Path(path).name == self.file_name

    def on_modified(self, event: FileSystemEvent):
        if not event.is_directory and self._matches(event.src_path):
            self.detector.handle_raw_event(Path(event.src_path))

    def on_created(self, event: FileSystemEvent):
        if not event.is_directory and self._matches(event.src_path):
            self.detector.handle_raw_event(Path(event.src_path))

    def on_moved(self, event: FileSystemEvent):
        # Games often write a temp file and rename it over the save
        if not event.is_directory and self._matches(event.dest_path):
            self.detector.handle_raw_event(Path(event.dest_path))


class EventChangeDetector(ChangeDetector):
    """Filesystem-notification detector built on watchdog."""

    def __init__(
        self,
        on_change: ChangeCallback,
        log_sink: Optional[LogSink] = None,
        debounce_window: float = DEBOUNCE_WINDOW,
        settle_delay: float = SETTLE_DELAY,
        clock: Callable[[], float] = time.monotonic
    ):
        """Initialize event-driven detector.

        Args:
            on_change: Called with the absolute path of the changed file
            log_sink: Sink for user-facing log entries
            debounce_window: Minimum spacing between accepted events, seconds
            settle_delay: Wait after an accepted event before reporting it, seconds
            clock: Monotonic clock used for debouncing
        """
        super().__init__(on_change, log_sink)
        self.settle_delay = settle_delay
        self.debouncer = Debouncer(debounce_window, clock)
        self._observer: Optional[Observer] = None
        self._resume_signature: Optional[Tuple[int, int]] = None

    def _file_signature(self) -> Optional[Tuple[int, int]]:
        try:
            stat = self.target.live_file.stat()
        except OSError:
            return None
        return stat.st_mtime_ns, stat.st_size

    def resume(self) -> None:
        # The observer delivers events for writes made while paused (a restore)
        # after the fact; remember the file as it is now so they are ignored
        if self._running and self._paused:
            self._resume_signature = self._file_signature()
        super().resume()

    def _start_watching(self, target: WatchTarget) -> None:
        self._resume_signature = None
        handler = _SaveFileHandler(self, target.file_name)
        self._observer = Observer()
        self._observer.schedule(handler, str(target.source_directory), recursive=False)
        self._observer.daemon = True
        self._observer.start()

    def _stop_watching(self) -> None:
        observer, self._observer = self._observer, None
        if observer is None:
            return
        observer.stop()
        if threading.current_thread() is not observer and observer.is_alive():
            observer.join(timeout=5.0)

    def _in_worker_thread(self) -> bool:
        # Called from a callback running on the observer's dispatch thread
        observer = self._observer
        return observer is not None and threading.current_thread() is observer

    def handle_raw_event(self, path: Path) -> bool:
        """Process one raw filesystem event.

        Returns:
            True if the event was accepted and reported
        """
        if self._paused or not self._running:
            return False
        if self._resume_signature is not None:
            if self._file_signature() == self._resume_signature:
                logger.debug(f"Ignoring event for {path}: unchanged since resume")
                return False
            self._resume_signature = None
        if not self.debouncer.accept():
            logger.debug(f"Debounced event for {path}")
            return False

        # The write may still be in progress across several OS calls
        if self.settle_delay > 0 and self._stop_event.wait(self.settle_delay):
            return False

        return self._dispatch(Path(path).resolve())


class PollingChangeDetector(ChangeDetector):
    """Detector that compares the file's modification time on an interval."""

    def __init__(
        self,
        on_change: ChangeCallback,
        log_sink: Optional[LogSink] = None,
        interval: float = POLL_INTERVAL
    ):
        """Initialize polling detector.

        Args:
            on_change: Called with the absolute path of the changed file
            log_sink: Sink for user-facing log entries
            interval: Seconds between checks
        """
        super().__init__(on_change, log_sink)
        self.interval = interval
        self.last_modified: Optional[float] = None
        self._thread: Optional[threading.Thread] = None

    def _read_mtime(self) -> Optional[float]:
        try:
            return self.target.live_file.stat().st_mtime
        except OSError as e:
            self.log_sink.warning(f"Could not read {self.target.live_file}: {e}")
            return None

    def _start_watching(self, target: WatchTarget) -> None:
        self.last_modified = self._read_mtime()
        self._thread = threading.Thread(target=self._poll_loop, name="save-file-poller", daemon=True)
        self._thread.start()

    def _stop_watching(self) -> None:
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=5.0)

    def _in_worker_thread(self) -> bool:
        return self._thread is not None and threading.current_thread() is self._thread

    def resume(self) -> None:
        # Writes made while paused (a restore) are not external changes
        if self._running and self._paused:
            current = self._read_mtime()
            if current is not None:
                self.last_modified = current
        super().resume()

    def _poll_loop(self) -> None:
        while not self._stop_event.wait(self.interval):
            self.poll_once()

    def poll_once(self) -> bool:
        """Check the file once.

        Returns:
            True if a change was detected and reported
        """
        if self._paused or self.target is None:
            return False

        current = self._read_mtime()
        if current is None:
            return False

        if self.last_modified is None:
            self.last_modified = current
            return False

        if current > self.last_modified:
            self.last_modified = current
            return self._dispatch(self.target.live_file.resolve())
        return False


def create_detector(
    detector_type: DetectorType,
    on_change: ChangeCallback,
    log_sink: Optional[LogSink] = None,
    poll_interval: float = POLL_INTERVAL
) -> ChangeDetector:
    """Build the detector selected in the settings."""
    if DetectorType(detector_type) == DetectorType.POLLING:
        return PollingChangeDetector(on_change, log_sink, interval=poll_interval)
    return EventChangeDetector(on_change, log_sink)
