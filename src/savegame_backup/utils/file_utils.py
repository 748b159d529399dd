"""File utility functions."""

import os
import shutil
from pathlib import Path
from typing import Iterable, List

# Artifacts the game writes next to the save; never synced remotely
BACKUP_ARTIFACT_SUFFIXES = ('.bak', '.profilebak')

class FileHelper:
    """Helper class for file operations."""

    @staticmethod
    def copy_file(source: Path, destination: Path) -> Path:
        """Copy a file, overwriting the destination if it exists.

        Args:
            source: File to copy
            destination: Target file path

        Returns:
            The destination path
        """
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, destination)
        return destination

    @staticmethod
    def directory_size(path: Path) -> int:
        """Total size in bytes of all files below a directory.

        Args:
            path: Directory to measure

        Returns:
            Size in bytes, 0 if the directory does not exist
        """
        if not path.exists():
            return 0

        total = 0
        for root, _dirs, files in os.walk(path):
            for name in files:
                try:
                    total += os.path.getsize(os.path.join(root, name))
                except OSError:
                    # File vanished between listing and stat
                    continue
        return total

    @staticmethod
    def remove_tree(path: Path) -> None:
        """Delete a directory tree, including read-only files such as git objects."""
        if not path.exists():
            return

        for root, dirs, files in os.walk(path):
            for name in dirs + files:
                os.chmod(os.path.join(root, name), 0o700)
        shutil.rmtree(path)

    @staticmethod
    def is_backup_artifact(file_path: Path) -> bool:
        """Check if a file is a game-side backup artifact.

        Args:
            file_path: Path to check

        Returns:
            True if the file ends in one of the artifact suffixes
        """
        return file_path.name.lower().endswith(BACKUP_ARTIFACT_SUFFIXES)

    @staticmethod
    def syncable_files(files: Iterable[Path]) -> List[Path]:
        """Filter out backup artifacts, keeping the caller's order."""
        return [Path(f) for f in files if not FileHelper.is_backup_artifact(Path(f))]

    @staticmethod
    def list_files(directory: Path) -> List[Path]:
        """List regular files directly inside a directory, sorted by name."""
        if not directory.is_dir():
            return []
        return sorted(p for p in directory.iterdir() if p.is_file())

    @staticmethod
    def format_file_size(size_bytes: int) -> str:
        """Format file size in human readable format.

        Args:
            size_bytes: Size in bytes

        Returns:
            Formatted size string
        """
        if size_bytes == 0:
            return "0 B"

        size_names = ["B", "KB", "MB", "GB", "TB", "PB"]
        i = 0

        while size_bytes >= 1024 and i < len(size_names) - 1:
            size_bytes /= 1024.0
            i += 1

        return f"{size_bytes:.1f} {size_names[i]}"
