"""Structured event loggers used by the provisioner and the verification sequence."""

from abc import ABC, abstractmethod
from typing import Dict, Any, Optional, List
from enum import Enum
from datetime import datetime
import json
import sys


class LogLevel(str, Enum):
    """Log severity levels."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


LEVEL_ORDER = {
    LogLevel.DEBUG: 0,
    LogLevel.INFO: 1,
    LogLevel.WARNING: 2,
    LogLevel.ERROR: 3,
    LogLevel.CRITICAL: 4,
}


class Logger(ABC):
    """Abstract base class for event logging."""

    @abstractmethod
    def log(
        self,
        level: LogLevel,
        event: str,
        message: str = "",
        data: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Log an event with optional data.

        Args:
            level: Log severity level
            event: Event name (e.g. "terraform.apply", "check.failed")
            message: Human-readable message
            data: Optional metadata dictionary
        """
        pass

    def debug(self, event: str, message: str = "", data: Optional[Dict[str, Any]] = None) -> None:
        self.log(LogLevel.DEBUG, event, message, data)

    def info(self, event: str, message: str = "", data: Optional[Dict[str, Any]] = None) -> None:
        self.log(LogLevel.INFO, event, message, data)

    def warning(self, event: str, message: str = "", data: Optional[Dict[str, Any]] = None) -> None:
        self.log(LogLevel.WARNING, event, message, data)

    def error(self, event: str, message: str = "", data: Optional[Dict[str, Any]] = None) -> None:
        self.log(LogLevel.ERROR, event, message, data)

    def critical(self, event: str, message: str = "", data: Optional[Dict[str, Any]] = None) -> None:
        self.log(LogLevel.CRITICAL, event, message, data)


class ConsoleLogger(Logger):
    """Console logger with colored output."""

    COLORS = {
        LogLevel.DEBUG: "\033[36m",      # Cyan
        LogLevel.INFO: "\033[32m",       # Green
        LogLevel.WARNING: "\033[33m",    # Yellow
        LogLevel.ERROR: "\033[31m",      # Red
        LogLevel.CRITICAL: "\033[35m",   # Magenta
    }
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    ICONS = {
        "run.started": "🚀",
        "run.completed": "🏁",
        "run.error": "❌",
        "terraform.init": "📦",
        "terraform.apply": "🚀",
        "terraform.output": "📋",
        "terraform.destroy": "🧹",
        "check.passed": "✅",
        "check.failed": "❌",
        "check.skipped": "⏭️",
        "teardown.completed": "🧹",
        "teardown.failed": "⚠️",
    }

    def __init__(
        self,
        min_level: LogLevel = LogLevel.INFO,
        colored: bool = True,
        show_timestamp: bool = False,
        show_data: bool = True,
    ):
        """
        Initialize console logger.

        Args:
            min_level: Minimum log level to display
            colored: Whether to use colored output (ignored when stdout is not a TTY)
            show_timestamp: Whether to prefix lines with a timestamp
            show_data: Whether to print the key data fields
        """
        self.min_level = min_level
        self.colored = colored and sys.stdout.isatty()
        self.show_timestamp = show_timestamp
        self.show_data = show_data

    def log(
        self,
        level: LogLevel,
        event: str,
        message: str = "",
        data: Optional[Dict[str, Any]] = None
    ) -> None:
        if LEVEL_ORDER[level] < LEVEL_ORDER[self.min_level]:
            return

        if event in ("run.started", "run.completed"):
            self._log_banner(level, event, message, data)
        else:
            self._log_line(level, event, message, data)

    def _log_line(
        self,
        level: LogLevel,
        event: str,
        message: str = "",
        data: Optional[Dict[str, Any]] = None
    ) -> None:
        parts = []

        if self.show_timestamp:
            timestamp = datetime.now().strftime("%H:%M:%S")
            parts.append(self._style(timestamp, self.DIM))

        parts.append(self.ICONS.get(event, "•"))
        parts.append(self._style(message or event, self.COLORS.get(level, "")))

        if data and self.show_data:
            key_data = self._extract_key_data(data)
            if key_data:
                parts.append(self._style(f"({key_data})", self.DIM))

        print("  " + " ".join(parts))

    def _log_banner(
        self,
        level: LogLevel,
        event: str,
        message: str = "",
        data: Optional[Dict[str, Any]] = None
    ) -> None:
        print()
        print("=" * 70)
        if event == "run.started":
            print(f"{self.ICONS[event]} {self._style('Azure VM Verification Run', self.BOLD)}")
        else:
            passed = data.get("passed", False) if data else False
            if passed:
                print(self._style("✅ PASSED", self.COLORS[LogLevel.INFO]))
            else:
                print(self._style("❌ FAILED", self.COLORS[LogLevel.ERROR]))
        if message:
            print(f"   {message}")
        print("=" * 70)

    def _style(self, text: str, code: str) -> str:
        if not self.colored or not code:
            return text
        return f"{code}{text}{self.RESET}"

    def _extract_key_data(self, data: Dict[str, Any]) -> str:
        """Pick the fields worth showing on one line."""
        priority = ["stage", "check", "resource", "expected", "actual", "duration_seconds"]

        key_items = []
        for key in priority:
            if key in data:
                value = data[key]
                if isinstance(value, float):
                    value = f"{value:.1f}"
                key_items.append(f"{key}={value}")

        return ", ".join(key_items)


class NullLogger(Logger):
    """Logger that does nothing."""

    def log(
        self,
        level: LogLevel,
        event: str,
        message: str = "",
        data: Optional[Dict[str, Any]] = None
    ) -> None:
        pass


class FileLogger(Logger):
    """Logger that appends JSON lines to a file."""

    def __init__(self, file_path: str, min_level: LogLevel = LogLevel.INFO):
        self.file_path = file_path
        self.min_level = min_level

    def log(
        self,
        level: LogLevel,
        event: str,
        message: str = "",
        data: Optional[Dict[str, Any]] = None
    ) -> None:
        if LEVEL_ORDER[level] < LEVEL_ORDER[self.min_level]:
            return

        entry = {
            "timestamp": datetime.now().isoformat(),
            "level": level.value,
            "event": event,
            "message": message,
        }
        if data:
            entry["data"] = data

        with open(self.file_path, 'a') as f:
            f.write(json.dumps(entry, default=str) + '\n')


class CompositeLogger(Logger):
    """Fan events out to several loggers (e.g. console plus a JSON log file)."""

    def __init__(self, loggers: List[Logger]):
        self.loggers = list(loggers)

    def log(
        self,
        level: LogLevel,
        event: str,
        message: str = "",
        data: Optional[Dict[str, Any]] = None
    ) -> None:
        for logger in self.loggers:
            logger.log(level, event, message, data)
