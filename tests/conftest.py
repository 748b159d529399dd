"""Shared fixtures and fakes for the test suite."""

import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Tuple

import pytest

# Add src to Python path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from savegame_backup.errors import AuthFailureError, NonFastForwardError, TransientIOError
from savegame_backup.models import WatchTarget
from savegame_backup.sync.remote_sync import RemoteStore
from savegame_backup.utils.logging import LogSink, LogType


class RecordingSink(LogSink):
    """Log sink that keeps every entry for assertions."""

    def __init__(self):
        self.entries: List[Tuple[str, LogType]] = []

    def log(self, message: str, log_type: LogType = LogType.SUCCESS) -> None:
        self.entries.append((message, log_type))

    def messages(self, log_type: LogType = None) -> List[str]:
        return [m for m, t in self.entries if log_type is None or t == log_type]


class FakeClock:
    """Settable clock usable for both datetimes and monotonic seconds."""

    def __init__(self, now=None):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, delta):
        self.now = self.now + delta


class FakeRemoteStore(RemoteStore):
    """In-memory remote: repositories are lists of commits."""

    def __init__(self, login: str = "survivor"):
        self.login = login
        self.reject_auth = False
        self.fail_pull = False
        self.reject_push = False
        self.repositories: Dict[str, List[List[str]]] = {}
        self.calls: List[str] = []
        self._staged: Dict[Path, List[str]] = {}
        self._pending: Dict[Path, List[List[str]]] = {}
        self._origin: Dict[Path, str] = {}

    def authenticate(self) -> str:
        self.calls.append("authenticate")
        if self.reject_auth:
            raise AuthFailureError("Bad credentials")
        return self.login

    def ensure_repository(self, name: str):
        self.calls.append(f"ensure:{name}")
        created = name not in self.repositories
        if created:
            self.repositories[name] = []
        return f"https://example.invalid/{self.login}/{name}.git", created

    def delete_repository(self, name: str) -> None:
        self.calls.append(f"delete:{name}")
        self.repositories.pop(name, None)

    def clone(self, clone_url: str, path: Path) -> None:
        self.calls.append("clone")
        path.mkdir(parents=True)
        (path / "README.md").write_text("# repo\n")
        self._origin[path] = clone_url.rsplit("/", 1)[-1][:-len(".git")]

    def pull(self, path: Path) -> None:
        self.calls.append("pull")
        if self.fail_pull:
            raise TransientIOError("network down")

    def stage(self, path: Path, file_names: List[str]) -> None:
        self.calls.append("stage")
        self._staged.setdefault(path, []).extend(file_names)

    def commit(self, path: Path, message: str, author_name: str, author_email: str) -> bool:
        self.calls.append("commit")
        staged = self._staged.pop(path, [])
        if not staged:
            return False
        self._pending.setdefault(path, []).append(sorted(staged))
        self.last_author = (author_name, author_email)
        self.last_message = message
        return True

    def push(self, path: Path) -> None:
        self.calls.append("push")
        if self.reject_push:
            raise NonFastForwardError("remote has diverged")
        repo = self.repositories[self._origin[path]]
        repo.extend(self._pending.pop(path, []))


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def save_dir(tmp_path):
    """Save folder containing the map save and some per-player files."""
    directory = tmp_path / "SavedArks"
    directory.mkdir()
    (directory / "TheIsland.ark").write_bytes(b"world-state-v1")
    (directory / "123456.arkprofile").write_bytes(b"profile")
    (directory / "123456.profilebak").write_bytes(b"old profile")
    (directory / "TheIsland_01.bak").write_bytes(b"old world")
    return directory


@pytest.fixture
def target(tmp_path, save_dir):
    return WatchTarget(
        source_directory=save_dir,
        file_base_name="TheIsland",
        backup_directory=tmp_path / "backups",
    )


@pytest.fixture
def fixed_now():
    return datetime(2024, 11, 3, 18, 42, 17)
