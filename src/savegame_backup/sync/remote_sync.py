"""Mirroring of the save folder into a GitHub repository.

The repository is a durability backend, not a history: once the local clone
grows past the retention ceiling, the remote repository and the clone are
deleted and recreated empty.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple

import git
from github import Auth, BadCredentialsException, Github, GithubException, UnknownObjectException

from ..errors import (AuthFailureError, NonFastForwardError, RemoteSyncError, SaveBackupError,
                      SizeCeilingExceeded, TransientIOError, UninitializedError)
from ..models import RemoteRepoHandle
from ..utils.file_utils import FileHelper
from ..utils.logging import LoggerSink, LogSink, TimedOperation

logger = logging.getLogger(__name__)

RETENTION_CEILING_BYTES = 900 * 1024 * 1024  # 900 MiB
COMMIT_MESSAGE = "Update important files from source folder."
USER_AGENT = "SavegameBackup"


class RemoteStore(ABC):
    """Account, repository and working-copy operations used by ``RemoteSync``."""

    @abstractmethod
    def authenticate(self) -> str:
        """Verify the token and return the account login.

        Raises:
            AuthFailureError: If the token is rejected
        """

    @abstractmethod
    def ensure_repository(self, name: str) -> Tuple[str, bool]:
        """Return ``(clone_url, created)`` for the named repository, creating it if missing."""

    @abstractmethod
    def delete_repository(self, name: str) -> None:
        """Delete the named remote repository."""

    @abstractmethod
    def clone(self, clone_url: str, path: Path) -> None:
        """Clone the repository into ``path``."""

    @abstractmethod
    def pull(self, path: Path) -> None:
        """Pull the latest remote state into the clone."""

    @abstractmethod
    def stage(self, path: Path, file_names: List[str]) -> None:
        """Stage files (relative to the clone root)."""

    @abstractmethod
    def commit(self, path: Path, message: str, author_name: str, author_email: str) -> bool:
        """Commit staged changes; False if there was nothing to commit."""

    @abstractmethod
    def push(self, path: Path) -> None:
        """Push the current branch.

        Raises:
            NonFastForwardError: If the remote history diverged
        """


class GitHubRemoteStore(RemoteStore):
    """``RemoteStore`` backed by the GitHub API (PyGithub) and git (GitPython)."""

    def __init__(self, token: str):
        """Initialize GitHub store.

        Args:
            token: Personal access token, passed through opaquely
        """
        self._token = token
        self._client = Github(auth=Auth.Token(token), user_agent=USER_AGENT)
        self._user = None

    def _current_user(self):
        if self._user is None:
            self.authenticate()
        return self._user

    def authenticate(self) -> str:
        try:
            user = self._client.get_user()
            login = user.login
        except BadCredentialsException as e:
            raise AuthFailureError(f"GitHub rejected the access token: {e}") from e
        except GithubException as e:
            raise RemoteSyncError(f"GitHub login failed: {e}") from e
        self._user = user
        return login

    def ensure_repository(self, name: str) -> Tuple[str, bool]:
        user = self._current_user()
        try:
            repo = self._client.get_repo(f"{user.login}/{name}")
            return repo.clone_url, False
        except UnknownObjectException:
            pass
        except GithubException as e:
            raise RemoteSyncError(f"Could not look up repository {name}: {e}") from e

        try:
            repo = user.create_repo(name, private=False, auto_init=True)
        except GithubException as e:
            raise RemoteSyncError(f"Could not create repository {name}: {e}") from e
        return repo.clone_url, True

    def delete_repository(self, name: str) -> None:
        user = self._current_user()
        try:
            self._client.get_repo(f"{user.login}/{name}").delete()
        except UnknownObjectException:
            logger.warning(f"Repository {name} was already gone")
        except GithubException as e:
            raise RemoteSyncError(f"Could not delete repository {name}: {e}") from e

    def _authenticated_url(self, clone_url: str) -> str:
        if clone_url.startswith("https://"):
            return clone_url.replace("https://", f"https://{self._token}@", 1)
        return clone_url

    @staticmethod
    def _open(path: Path) -> git.Repo:
        try:
            return git.Repo(str(path))
        except git.GitError as e:
            raise TransientIOError(f"{path} is not a usable clone: {e}") from e

    def clone(self, clone_url: str, path: Path) -> None:
        try:
            git.Repo.clone_from(self._authenticated_url(clone_url), str(path))
        except git.GitCommandError as e:
            raise TransientIOError(f"Clone failed: {e}") from e

    def pull(self, path: Path) -> None:
        try:
            self._open(path).remote("origin").pull()
        except (git.GitCommandError, ValueError) as e:
            raise TransientIOError(f"Pull failed: {e}") from e

    def stage(self, path: Path, file_names: List[str]) -> None:
        repo = self._open(path)
        try:
            repo.index.add(file_names)
        except (git.GitError, OSError) as e:
            raise TransientIOError(f"Could not stage {', '.join(file_names)}: {e}") from e

    def commit(self, path: Path, message: str, author_name: str, author_email: str) -> bool:
        repo = self._open(path)
        try:
            if repo.head.is_valid() and not repo.index.diff("HEAD"):
                return False

            actor = git.Actor(author_name, author_email)
            repo.index.commit(message, author=actor, committer=actor)
        except (git.GitError, OSError) as e:
            raise TransientIOError(f"Commit failed: {e}") from e
        return True

    def push(self, path: Path) -> None:
        repo = self._open(path)
        try:
            results = repo.remote("origin").push()
        except ValueError as e:
            # No origin remote configured
            raise RemoteSyncError(f"Push failed: {e}") from e
        except git.GitCommandError as e:
            if "non-fast-forward" in str(e) or "rejected" in str(e):
                raise NonFastForwardError(f"Push rejected: {e}") from e
            raise RemoteSyncError(f"Push failed: {e}") from e

        for info in results:
            if info.flags & git.PushInfo.REJECTED or info.flags & git.PushInfo.REMOTE_REJECTED:
                raise NonFastForwardError(f"Push rejected: {info.summary.strip()}")
            if info.flags & git.PushInfo.ERROR:
                raise RemoteSyncError(f"Push failed: {info.summary.strip()}")


class RetentionPolicy:
    """Size ceiling for the local clone, and the eviction that enforces it."""

    def __init__(
        self,
        ceiling_bytes: int = RETENTION_CEILING_BYTES,
        measure: Callable[[Path], int] = FileHelper.directory_size
    ):
        self.ceiling_bytes = ceiling_bytes
        self.measure = measure

    def check(self, path: Path) -> int:
        """Measure the clone.

        Returns:
            Current size in bytes

        Raises:
            SizeCeilingExceeded: If the size is above the ceiling
        """
        size = self.measure(path)
        if size > self.ceiling_bytes:
            raise SizeCeilingExceeded(size, self.ceiling_bytes)
        return size

    def enforce(self, sync: "RemoteSync") -> bool:
        """Evict and reinitialize if the clone is over the ceiling.

        Returns:
            True if an eviction took place
        """
        try:
            size = self.check(sync.local_clone_path)
        except SizeCeilingExceeded as e:
            sync.log_sink.error(
                f"Repository size exceeded {self.ceiling_bytes // (1024 * 1024)} MB "
                f"({e.size_bytes // (1024 * 1024)} MB). Evicting remote history."
            )
            sync.evict()
            if not sync.initialize():
                raise UninitializedError("Remote repository could not be recreated after eviction") from e
            return True

        if sync.handle is not None:
            sync.handle.size_bytes = size
        sync.log_sink.success(
            f"Current repo size: {size // (1024 * 1024)} / {self.ceiling_bytes // (1024 * 1024)} MB."
        )
        return False


class RemoteSync:
    """Pushes the save folder's files into ``{file_base_name}-repo``."""

    def __init__(
        self,
        file_base_name: str,
        store: RemoteStore,
        clone_root: Path,
        policy: Optional[RetentionPolicy] = None,
        log_sink: Optional[LogSink] = None
    ):
        """Initialize remote sync.

        Args:
            file_base_name: Save file name without extension, used for the repository name
            store: Remote store implementation
            clone_root: Directory in which the local clone lives
            policy: Retention policy (defaults to the 900 MiB ceiling)
            log_sink: Sink for user-facing log entries
        """
        self.repo_name = f"{file_base_name}-repo"
        self.store = store
        self.local_clone_path = Path(clone_root) / self.repo_name
        self.policy = policy or RetentionPolicy()
        self.log_sink = log_sink or LoggerSink(logger)
        self.handle: Optional[RemoteRepoHandle] = None

    @classmethod
    def for_github(cls, file_base_name: str, token: str, clone_root: Path,
                   log_sink: Optional[LogSink] = None) -> "RemoteSync":
        return cls(file_base_name, GitHubRemoteStore(token), clone_root, log_sink=log_sink)

    @property
    def is_initialized(self) -> bool:
        return self.handle is not None

    def initialize(self) -> bool:
        """Log in, resolve or create the repository, and clone it if needed.

        Returns:
            True on success; False if the token was rejected
        """
        self.log_sink.success("Initializing remote sync...")
        self.handle = None

        try:
            login = self.store.authenticate()
        except AuthFailureError as e:
            self.log_sink.error(f"Error while trying to login: {e}")
            return False
        self.log_sink.success(f"Logged in as {login}.")

        clone_url, created = self.store.ensure_repository(self.repo_name)
        if created:
            self.log_sink.warning(f"Repository {self.repo_name} not found. Created new repository.")
        else:
            self.log_sink.success(f"Repository {self.repo_name} exists.")

        if not self.local_clone_path.exists():
            self.local_clone_path.parent.mkdir(parents=True, exist_ok=True)
            self.store.clone(clone_url, self.local_clone_path)
            self.log_sink.success(f"Repository {self.repo_name} cloned locally to {self.local_clone_path}.")

        self.handle = RemoteRepoHandle(
            local_clone_path=self.local_clone_path,
            remote_identity=clone_url,
            owner_login=login,
        )
        return True

    def evict(self) -> None:
        """Delete the remote repository and the local clone. Irreversible."""
        self.log_sink.warning(
            f"Evicting repository {self.repo_name}. This operation is irreversible."
        )
        try:
            self.store.delete_repository(self.repo_name)
        except RemoteSyncError as e:
            self.log_sink.error(f"Failed to delete remote repository: {e}")
            raise
        self.log_sink.success(f"Remote repository {self.repo_name} deleted.")

        try:
            FileHelper.remove_tree(self.local_clone_path)
        except OSError as e:
            self.log_sink.error(f"Failed to delete local repository: {e}")
            raise TransientIOError(f"Could not delete {self.local_clone_path}: {e}") from e
        self.log_sink.success(f"Local repository {self.local_clone_path} deleted.")
        self.handle = None

    def push(self, files: Iterable[Path]) -> List[str]:
        """Commit and push the given files.

        Args:
            files: Candidate files; backup artifacts are skipped

        Returns:
            Names of the files that were staged

        Raises:
            UninitializedError: If ``initialize()`` has not succeeded
            NonFastForwardError: If the remote rejected the push
        """
        if self.handle is None:
            self.log_sink.error("Remote sync is not initialized; push skipped.")
            raise UninitializedError(f"Repository {self.repo_name} is not initialized")

        with TimedOperation(self.log_sink, f"push to {self.repo_name}"):
            self.policy.enforce(self)

            eligible = FileHelper.syncable_files(files)
            if not eligible:
                self.log_sink.warning("No important files found to push.")
                return []

            try:
                self.store.pull(self.local_clone_path)
                self.log_sink.success("Pulled latest changes from remote.")
            except SaveBackupError as e:
                self.log_sink.warning(f"Pull failed: {e}")

            staged = []
            for file_path in eligible:
                try:
                    FileHelper.copy_file(file_path, self.local_clone_path / file_path.name)
                except OSError as e:
                    self.log_sink.error(f"Could not copy {file_path} into the clone: {e}")
                    raise TransientIOError(f"Could not copy {file_path}: {e}") from e
                staged.append(file_path.name)
            self.store.stage(self.local_clone_path, staged)
            for name in staged:
                self.log_sink.success(f"Staged file: {name}")

            login = self.handle.owner_login
            committed = self.store.commit(
                self.local_clone_path,
                COMMIT_MESSAGE,
                login,
                f"{login}@users.noreply.github.com",
            )
            if not committed:
                self.log_sink.warning("Nothing changed since the last push.")
                return staged
            self.log_sink.success("Committed changes to the local repository.")

            try:
                self.store.push(self.local_clone_path)
            except NonFastForwardError as e:
                self.log_sink.error(f"Push failed: {e}")
                raise
            self.log_sink.success("Files pushed to remote successfully.")
            return staged
