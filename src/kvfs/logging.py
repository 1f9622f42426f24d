"""Structured event log for filesystem operations.

Each filesystem instance records what it did (created a file, freed a
block, rejected a request) as ``LogEntry`` records in an append-only
in-memory buffer.  Hosts inspect the buffer directly or filter it:

- **LogLevel** — severity, ordered for filtering (DEBUG < ERROR).
- **LogEntry** — one immutable record (level, message, source, path).
- **Logger** — the buffer, with filtering and clearing.
"""

from dataclasses import dataclass
from enum import IntEnum

from kvfs.paths import is_within


class LogLevel(IntEnum):
    """Severity levels for log entries."""

    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3


@dataclass(frozen=True)
class LogEntry:
    """A single structured log record.

    Attributes:
        level: The severity of this event.
        message: A human-readable description of what happened.
        source: The component that generated the event (e.g. "tree").
        path: The canonical path involved, if any.

    """

    level: LogLevel
    message: str
    source: str
    path: str | None = None

    def __str__(self) -> str:
        """Format as ``[LEVEL] source: message (path)``."""
        suffix = f" ({self.path})" if self.path is not None else ""
        return f"[{self.level.name}] {self.source}: {self.message}{suffix}"


class Logger:
    """Append-only log buffer with filtering."""

    def __init__(self, *, min_level: LogLevel = LogLevel.DEBUG) -> None:
        """Create an empty logger that drops entries below *min_level*."""
        self._entries: list[LogEntry] = []
        self._min_level = min_level

    @property
    def entries(self) -> list[LogEntry]:
        """Return all log entries in chronological order."""
        return list(self._entries)

    def log(
        self,
        level: LogLevel,
        message: str,
        *,
        source: str,
        path: str | None = None,
    ) -> None:
        """Append a new entry to the log.

        Args:
            level: Severity of the event.
            message: Human-readable event description.
            source: Component that generated the event.
            path: Canonical path the event concerns.

        """
        if level < self._min_level:
            return
        self._entries.append(LogEntry(level=level, message=message, source=source, path=path))

    def debug(self, message: str, *, source: str, path: str | None = None) -> None:
        """Log at DEBUG level."""
        self.log(LogLevel.DEBUG, message, source=source, path=path)

    def info(self, message: str, *, source: str, path: str | None = None) -> None:
        """Log at INFO level."""
        self.log(LogLevel.INFO, message, source=source, path=path)

    def warning(self, message: str, *, source: str, path: str | None = None) -> None:
        """Log at WARNING level."""
        self.log(LogLevel.WARNING, message, source=source, path=path)

    def filter(
        self,
        *,
        min_level: LogLevel | None = None,
        source: str | None = None,
        path: str | None = None,
    ) -> list[LogEntry]:
        """Return entries matching every given criterion.

        Args:
            min_level: Keep entries at or above this level.
            source: Keep entries from this component.
            path: Keep entries about this canonical path or anything
                beneath it.  Entries with no path never match.

        """

        def matches(entry: LogEntry) -> bool:
            if min_level is not None and entry.level < min_level:
                return False
            if source is not None and entry.source != source:
                return False
            return path is None or (entry.path is not None and is_within(path, entry.path))

        return [e for e in self._entries if matches(e)]

    def clear(self) -> None:
        """Drop every buffered entry."""
        self._entries.clear()
