"""Command-line interface for the save-game backup tool."""

import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from . import __version__
from .config.settings import BackupSettings, default_backup_path, detect_map_name
from .errors import AuthFailureError, NonFastForwardError, SaveBackupError
from .sync.backup_store import BackupStore
from .sync.orchestrator import SyncOrchestrator, SyncState
from .sync.remote_sync import RemoteSync
from .utils.file_utils import FileHelper
from .utils.logging import LoggerSink, LogSink, LogType, setup_logging

console = Console()

DEFAULT_CONFIG = Path('config/config.yaml')

_STYLES = {
    LogType.SUCCESS: "green",
    LogType.WARNING: "dark_orange",
    LogType.ERROR: "red",
}


class ConsoleLogSink(LogSink):
    """Prints log entries to the console in colour and forwards them to logging."""

    def __init__(self, console: Console, forward: Optional[LogSink] = None):
        self.console = console
        self.forward = forward or LoggerSink(logging.getLogger("savegame_backup.cli"))

    def log(self, message: str, log_type: LogType = LogType.SUCCESS) -> None:
        try:
            self.console.print(f"{datetime.now():%Y-%m-%d %H:%M:%S} {message}",
                               style=_STYLES.get(log_type), markup=False, highlight=False)
        except Exception:
            # Console may be gone; the file log still gets it
            pass
        self.forward.log(message, log_type)


def _load_settings(config: Path) -> BackupSettings:
    return BackupSettings.from_yaml(config).with_env()


def _store_for(settings: BackupSettings, sink: LogSink) -> BackupStore:
    target = settings.watch_target()
    return BackupStore(target.backup_directory, target.file_base_name, target.extension, sink)


config_option = click.option(
    '--config', '-c',
    type=click.Path(path_type=Path),
    default=DEFAULT_CONFIG,
    help='Path to configuration file'
)


@click.group()
@click.version_option(version=__version__)
@click.option('--log-file', type=click.Path(path_type=Path), default=Path('logs/backup.log'),
              help='Path to log file')
@click.option('--verbose', '-v', is_flag=True, help='Log debug output')
def cli(log_file: Path, verbose: bool):
    """Save-game Backup Tool

    Keeps timestamped backups of a game save file whenever it changes and
    optionally mirrors the save folder into a GitHub repository.
    """
    setup_logging(
        log_level="DEBUG" if verbose else "WARNING",
        log_file=log_file,
        log_to_console=False,
    )


@cli.command()
@config_option
def init(config: Path):
    """Initialize a new configuration file."""
    if config.exists():
        if not click.confirm(f"Configuration file {config} already exists. Overwrite?"):
            return

    settings = BackupSettings(
        save_path=Path('SavedArks'),
        backup_path=Path('TheIsland-backup'),
        map_name='TheIsland',
        auto_start=False,
    )
    settings.to_yaml(config)

    console.print(f"✅ Configuration saved to {config}", style="green")
    console.print("\n📝 Next steps:")
    console.print("1. Run 'savegame-backup detect <save folder>' or edit the file by hand")
    console.print("2. Optionally set GITHUB_TOKEN to mirror saves into a GitHub repository")
    console.print("3. Run 'savegame-backup watch' to start backing up")


@cli.command()
@config_option
@click.argument('save_path', type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option('--backup-path', '-b', type=click.Path(file_okay=False, path_type=Path),
              help='Backup folder (default: <map>-backup in the current directory)')
def detect(config: Path, save_path: Path, backup_path: Optional[Path]):
    """Detect the map name in SAVE_PATH and save the settings."""
    settings = BackupSettings.from_yaml(config)
    try:
        map_name = detect_map_name(save_path, settings.save_extension)
    except SaveBackupError as e:
        console.print(f"❌ Error: {e}", style="red bold")
        sys.exit(1)

    console.print(f"✅ Detected map: {map_name}", style="green")
    if backup_path is None:
        backup_path = settings.backup_path or default_backup_path(map_name)
    else:
        backup_path.mkdir(parents=True, exist_ok=True)

    settings = settings.model_copy(update={
        'save_path': save_path.resolve(),
        'backup_path': backup_path.resolve(),
        'map_name': map_name,
    })
    settings.to_yaml(config)
    console.print(f"✅ Configuration saved to {config}", style="green")


@cli.command()
@config_option
@click.option('--detector', '-d', type=click.Choice(['events', 'polling']),
              help='Override the configured change detector')
@click.option('--no-remote', is_flag=True, help='Keep backups local even if a token is configured')
@click.option('--auto', 'auto', is_flag=True,
              help='Only start if auto_start is enabled and the settings are complete')
def watch(config: Path, detector: Optional[str], no_remote: bool, auto: bool):
    """Watch the save file and back it up on every change."""
    settings = _load_settings(config)
    if auto and not (settings.auto_start and settings.is_complete()):
        console.print("Auto start is disabled or the settings are incomplete; not starting.",
                      style="yellow")
        return
    if detector:
        settings = settings.model_copy(update={'detector': detector})

    sink = ConsoleLogSink(console)
    try:
        orchestrator = SyncOrchestrator.from_settings(settings, sink)
    except SaveBackupError as e:
        console.print(f"❌ Error: {e}", style="red bold")
        sys.exit(1)

    token = None if no_remote else settings.remote_token
    state = orchestrator.start(token)
    mode = "local + remote" if state == SyncState.WATCHING_WITH_REMOTE else "local only"
    console.print(f"👀 Watching {orchestrator.target.live_file} ({mode}). Press Ctrl+C to stop.")

    try:
        while orchestrator.is_running:
            time.sleep(1.0)
    except KeyboardInterrupt:
        pass
    finally:
        orchestrator.stop()


@cli.command('list')
@config_option
def list_backups(config: Path):
    """List available backups, newest first."""
    settings = _load_settings(config)
    try:
        store = _store_for(settings, LoggerSink())
    except SaveBackupError as e:
        console.print(f"❌ Error: {e}", style="red bold")
        sys.exit(1)

    backups = store.list_backups()
    if not backups:
        console.print("No backups available to load.", style="yellow")
        return

    table = Table(title=f"Backups of {settings.map_name}")
    table.add_column("Backup", style="cyan", no_wrap=True)
    table.add_column("Timestamp", style="magenta", no_wrap=True)
    table.add_column("Size", justify="right")

    for record in backups:
        try:
            size = FileHelper.format_file_size(record.file_path.stat().st_size)
        except OSError:
            size = "?"
        table.add_row(record.display_label, record.timestamp, size)

    console.print(table)


@cli.command()
@config_option
@click.argument('timestamp', required=False)
@click.option('--latest', is_flag=True, help='Restore the newest backup')
def restore(config: Path, timestamp: Optional[str], latest: bool):
    """Restore the backup taken at TIMESTAMP (yyyy.MM.dd_HH.mm) over the live save."""
    settings = _load_settings(config)
    sink = ConsoleLogSink(console)
    try:
        store = _store_for(settings, sink)
        if latest:
            record = store.latest_backup()
            if record is None:
                console.print("No backups available to load.", style="yellow")
                return
            timestamp = record.timestamp
        if not timestamp:
            raise click.UsageError("Give a TIMESTAMP or --latest")

        restored = store.restore_backup(timestamp, settings.save_path)
    except SaveBackupError as e:
        console.print(f"❌ Error loading backup: {e}", style="red bold")
        sys.exit(1)

    console.print(f"✅ Backup {timestamp} successfully loaded into {restored}", style="green")


@cli.command()
@config_option
def push(config: Path):
    """Push the save folder to the remote repository once."""
    settings = _load_settings(config)
    if not settings.remote_token:
        console.print("❌ No remote token configured (set GITHUB_TOKEN)", style="red bold")
        sys.exit(1)

    sink = ConsoleLogSink(console)
    try:
        target = settings.watch_target()
        remote_sync = RemoteSync.for_github(target.file_base_name, settings.remote_token,
                                            settings.clone_root, log_sink=sink)
        if not remote_sync.initialize():
            raise AuthFailureError("Login failed")
        pushed = remote_sync.push(FileHelper.list_files(target.source_directory))
    except (AuthFailureError, NonFastForwardError) as e:
        console.print(f"❌ Push failed: {e}", style="red bold")
        sys.exit(1)
    except SaveBackupError as e:
        console.print(f"❌ Error: {e}", style="red bold")
        sys.exit(1)

    console.print(f"✅ {len(pushed)} files synced to {remote_sync.repo_name}", style="green")


@cli.command()
@config_option
def status(config: Path):
    """Show configuration status."""
    settings = _load_settings(config)

    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("Save path", str(settings.save_path or "Not Selected"))
    table.add_row("Backup path", str(settings.backup_path or "Not Selected"))
    table.add_row("Map name", settings.map_name or "Not detected")
    table.add_row("Detector", settings.detector.value)
    table.add_row("Auto start", "✅" if settings.auto_start else "❌")
    table.add_row("Remote sync", "✅ Token set" if settings.remote_token else "❌ Disabled")

    if settings.is_complete():
        store = _store_for(settings, LoggerSink())
        backups = store.list_backups()
        latest = backups[0].display_label if backups else "None"
        table.add_row("Backups", str(len(backups)))
        table.add_row("Latest", latest)

    console.print(table)


if __name__ == '__main__':
    cli()
