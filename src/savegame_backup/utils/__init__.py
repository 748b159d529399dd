"""Utility functions and helpers."""

from .file_utils import FileHelper
from .logging import LoggerSink, LogSink, LogType, setup_logging

__all__ = ["setup_logging", "FileHelper", "LogSink", "LoggerSink", "LogType"]
