"""
Save-game Backup Tool

Protects a game save file by keeping timestamped local backups on every
change and, optionally, mirroring the save folder into a GitHub repository.
"""

__version__ = "1.0.0"
__author__ = "Savegame Backup Tool"
__description__ = "Timestamped local and GitHub backups for game save files"

from .config.settings import BackupSettings
from .sync.backup_store import BackupStore
from .sync.orchestrator import SyncOrchestrator

__all__ = ["BackupSettings", "BackupStore", "SyncOrchestrator"]
