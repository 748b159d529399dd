"""Tests for backup timestamps and "time ago" labels."""

from datetime import datetime, timedelta

import pytest

from savegame_backup.utils.timestamps import (UNKNOWN_TIME_LABEL, backup_label, format_time_ago,
                                              format_timestamp, parse_timestamp)


def test_format_timestamp_drops_seconds():
    assert format_timestamp(datetime(2024, 1, 5, 7, 3, 59)) == "2024.01.05_07.03"


def test_parse_timestamp_round_trips_minute():
    assert parse_timestamp("2024.01.05_07.03") == datetime(2024, 1, 5, 7, 3)


@pytest.mark.parametrize("value", ["", "latest", "2024-01-05_07.03", "2024.13.05_07.03", None])
def test_parse_timestamp_rejects_malformed(value):
    assert parse_timestamp(value) is None


def test_timestamps_sort_chronologically():
    moments = [datetime(2023, 12, 31, 23, 59), datetime(2024, 1, 1, 0, 0), datetime(2024, 10, 2, 9, 5)]
    stamps = [format_timestamp(m) for m in moments]
    assert sorted(reversed(stamps)) == stamps


@pytest.mark.parametrize("elapsed,label", [
    (timedelta(0), "Backup just now"),
    (timedelta(seconds=59), "Backup just now"),
    (timedelta(minutes=1), "Backup 1 minute ago"),
    (timedelta(minutes=5), "Backup 5 minutes ago"),
    (timedelta(hours=2), "Backup 2 hours ago"),
    (timedelta(days=1, minutes=5), "Backup 1 day 5 minutes ago"),
    (timedelta(days=1, hours=3), "Backup 1 day 3 hours ago"),
    (timedelta(days=3, hours=1, minutes=2), "Backup 3 days 1 hour 2 minutes ago"),
])
def test_format_time_ago(elapsed, label):
    assert format_time_ago(elapsed) == label


def test_future_timestamp_counts_as_just_now():
    assert format_time_ago(timedelta(minutes=-3)) == "Backup just now"


def test_backup_label_unknown_for_unparseable():
    assert backup_label("not-a-time", datetime(2024, 1, 1)) == UNKNOWN_TIME_LABEL


def test_backup_label_relative_to_now():
    now = datetime(2024, 1, 2, 12, 30, 45)
    assert backup_label("2024.01.02_10.30", now) == "Backup 2 hours ago"
