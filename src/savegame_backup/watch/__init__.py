"""Change detection for the monitored save file."""

from .detector import (ChangeDetector, Debouncer, DetectorType, EventChangeDetector,
                       PollingChangeDetector, create_detector)

__all__ = [
    "ChangeDetector",
    "Debouncer",
    "DetectorType",
    "EventChangeDetector",
    "PollingChangeDetector",
    "create_detector",
]
