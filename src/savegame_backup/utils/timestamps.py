"""Minute-precision timestamps used in backup file names and labels."""

from datetime import datetime, timedelta
from typing import Optional

# Fixed-width so that lexicographic order matches chronological order
TIMESTAMP_FORMAT = "%Y.%m.%d_%H.%M"

UNKNOWN_TIME_LABEL = "Backup (unknown time)"


def format_timestamp(moment: datetime) -> str:
    """Format a datetime as a backup timestamp (seconds are dropped)."""
    return moment.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> Optional[datetime]:
    """Parse a backup timestamp.

    Args:
        value: Timestamp string in ``yyyy.MM.dd_HH.mm`` form

    Returns:
        Parsed datetime, or None if the string does not match the format
    """
    try:
        return datetime.strptime(value, TIMESTAMP_FORMAT)
    except (TypeError, ValueError):
        return None


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'s' if count > 1 else ''}"


def format_time_ago(difference: timedelta) -> str:
    """Render an elapsed duration as a backup label.

    Anything under a minute is "Backup just now"; otherwise the non-zero
    day, hour and minute components are joined, e.g. "Backup 1 day 5 minutes ago".
    """
    if difference < timedelta(minutes=1):
        return "Backup just now"

    days = difference.days
    hours, remainder = divmod(difference.seconds, 3600)
    minutes = remainder // 60

    parts = []
    if days > 0:
        parts.append(_plural(days, "day"))
    if hours > 0:
        parts.append(_plural(hours, "hour"))
    if minutes > 0:
        parts.append(_plural(minutes, "minute"))

    return "Backup " + " ".join(parts) + " ago"


def backup_label(timestamp: str, now: datetime) -> str:
    """Label for a backup timestamp relative to ``now``."""
    backup_time = parse_timestamp(timestamp)
    if backup_time is None:
        return UNKNOWN_TIME_LABEL
    return format_time_ago(now - backup_time)
