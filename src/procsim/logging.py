"""Simulation event log.

Every noteworthy thing the simulation does (a process is created, an
allocation is refused, the scheduler dispatches or retires a process)
is recorded as a structured entry, stamped with the simulated tick on
which it happened.  This is the simulator's ``dmesg``: an in-memory,
append-only audit trail that the shell and web layers can query.

- **LogLevel**: severity, ordered so ``min_level`` filtering is a comparison.
- **LogEntry**: one immutable record (level, message, source, tick).
- **Logger**: the buffer itself, with filtering and clearing.
"""

from dataclasses import dataclass
from enum import IntEnum


class LogLevel(IntEnum):
    """Severity levels for log entries, lowest first."""

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
        source: The subsystem that generated the event (e.g. "scheduler").
        tick: Simulated time at which the event was recorded.

    """

    level: LogLevel
    message: str
    source: str
    tick: int = 0

    def __str__(self) -> str:
        """Format as ``[t=TICK] [LEVEL] source: message``."""
        return f"[t={self.tick}] [{self.level.name}] {self.source}: {self.message}"


class Logger:
    """Append-only log buffer with filtering.

    An optional ``capacity`` bounds the buffer; once full, the oldest
    entries are discarded first.
    """

    def __init__(self, *, capacity: int | None = None) -> None:
        """Create an empty logger.

        Args:
            capacity: Maximum number of retained entries (None = unbounded).

        Raises:
            ValueError: If capacity is not positive.

        """
        if capacity is not None and capacity <= 0:
            msg = f"Log capacity must be positive, got {capacity}"
            raise ValueError(msg)
        self._capacity = capacity
        self._entries: list[LogEntry] = []

    @property
    def entries(self) -> list[LogEntry]:
        """Return all retained entries in chronological order."""
        return list(self._entries)

    def __len__(self) -> int:
        """Return the number of retained entries."""
        return len(self._entries)

    def log(self, level: LogLevel, message: str, *, source: str, tick: int = 0) -> None:
        """Append a new entry to the log.

        Args:
            level: Severity of the event.
            message: Human-readable event description.
            source: Subsystem that generated the event.
            tick: Simulated time of the event.

        """
        self._entries.append(LogEntry(level=level, message=message, source=source, tick=tick))
        if self._capacity is not None and len(self._entries) > self._capacity:
            del self._entries[0]

    def filter(
        self,
        *,
        min_level: LogLevel | None = None,
        source: str | None = None,
    ) -> list[LogEntry]:
        """Return entries matching the given criteria.

        Args:
            min_level: If set, only return entries at or above this level.
            source: If set, only return entries from this source.

        Returns:
            A filtered list of log entries.

        """
        return [
            e
            for e in self._entries
            if (min_level is None or e.level >= min_level)
            and (source is None or e.source == source)
        ]

    def clear(self) -> None:
        """Remove all log entries."""
        self._entries.clear()
