"""Event logging for verification runs."""

from .logger import (
    Logger,
    LogLevel,
    ConsoleLogger,
    NullLogger,
    FileLogger,
    CompositeLogger,
)

__all__ = [
    "Logger",
    "LogLevel",
    "ConsoleLogger",
    "NullLogger",
    "FileLogger",
    "CompositeLogger",
]
