"""Module de logging."""

from runcmd.logging.base import Logger
from runcmd.logging.file_logger import FileLogger

__all__ = [
    "Logger",
    "FileLogger",
]
