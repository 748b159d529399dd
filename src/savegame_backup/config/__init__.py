"""Configuration management for the save-game backup tool."""

from .settings import BackupSettings, default_backup_path, detect_map_name

__all__ = ["BackupSettings", "default_backup_path", "detect_map_name"]
