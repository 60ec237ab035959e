"""Process and Process Control Block (PCB).

A simulated process is a unit of CPU work: it has a burst of remaining
ticks, a fixed memory request, and a priority.  The scheduler moves it
through a three-state lifecycle, and every transition method checks
that the process is in the right source state before moving it.

State machine::

    READY ⇄ RUNNING → TERMINATED
      └───────────────↗   (manual kill)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum, StrEnum

MAX_CPU_USAGE = 100
DEFAULT_CPU_INCREMENT = 20


class ProcessState(StrEnum):
    """Lifecycle states of a simulated process.

    - READY: admitted and waiting for the CPU.
    - RUNNING: holding the CPU for the current tick.
    - TERMINATED: finished or killed; about to be removed.
    """

    READY = "ready"
    RUNNING = "running"
    TERMINATED = "terminated"


class Priority(IntEnum):
    """Scheduling priority.  Higher values win under priority scheduling."""

    LOW = 1
    MEDIUM = 2
    HIGH = 3

    @classmethod
    def parse(cls, value: Priority | str | int) -> Priority:
        """Convert a name (``"high"``), number, or Priority to a Priority.

        Raises:
            ValueError: If the value names no priority.

        """
        if isinstance(value, Priority):
            return value
        if isinstance(value, int):
            return cls(value)
        if not isinstance(value, str):
            msg = f"Priority must be a name or number, got {type(value).__name__}"
            raise ValueError(msg)
        try:
            return cls[value.strip().upper()]
        except KeyError:
            msg = f"Unknown priority '{value}' (expected low, medium, or high)"
            raise ValueError(msg) from None

    def __str__(self) -> str:
        """Return the lowercase name, as shown in process tables."""
        return self.name.lower()


@dataclass(frozen=True)
class ProcessInfo:
    """Immutable snapshot of a process for read-only consumers."""

    pid: int
    name: str
    state: ProcessState
    priority: Priority
    cpu_usage: int
    memory_mb: int
    remaining_burst: int
    arrival_tick: int

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-friendly mapping of the snapshot."""
        return {
            "pid": self.pid,
            "name": self.name,
            "state": str(self.state),
            "priority": str(self.priority),
            "cpu_usage": self.cpu_usage,
            "memory_mb": self.memory_mb,
            "remaining_burst": self.remaining_burst,
            "arrival_tick": self.arrival_tick,
        }


class Process:
    """A simulated process (the Process Control Block).

    The PID is assigned by the caller (normally the process registry),
    so each simulation numbers its own processes.  A process starts
    READY: creation and admission are a single step here because the
    simulation only builds a PCB once its memory is secured.
    """

    def __init__(
        self,
        *,
        pid: int,
        name: str,
        burst: int,
        memory_mb: int = 0,
        priority: Priority = Priority.MEDIUM,
        arrival_tick: int = 0,
    ) -> None:
        """Create a new process in the READY state.

        Args:
            pid: Unique process identifier.
            name: Display label; need not be unique.
            burst: Ticks of CPU work to perform (must be positive).
            memory_mb: Memory request in megabytes.
            priority: Scheduling priority.
            arrival_tick: Simulated time of creation.

        Raises:
            ValueError: If burst is not positive or memory_mb is negative.

        """
        if burst <= 0:
            msg = f"Burst must be positive, got {burst}"
            raise ValueError(msg)
        if memory_mb < 0:
            msg = f"Memory request must not be negative, got {memory_mb}"
            raise ValueError(msg)
        self._pid = pid
        self._name = name
        self._state = ProcessState.READY
        self._priority = priority
        self._cpu_usage = 0
        self._memory_mb = memory_mb
        self._remaining_burst = burst
        self._arrival_tick = arrival_tick

    @property
    def pid(self) -> int:
        """Return the unique process identifier."""
        return self._pid

    @property
    def name(self) -> str:
        """Return the process name."""
        return self._name

    @property
    def state(self) -> ProcessState:
        """Return the current process state."""
        return self._state

    @property
    def priority(self) -> Priority:
        """Return the scheduling priority (fixed at creation)."""
        return self._priority

    @property
    def cpu_usage(self) -> int:
        """Return the CPU usage percentage (0-100)."""
        return self._cpu_usage

    @property
    def memory_mb(self) -> int:
        """Return the memory request in megabytes."""
        return self._memory_mb

    @property
    def remaining_burst(self) -> int:
        """Return the ticks of work left."""
        return self._remaining_burst

    @property
    def arrival_tick(self) -> int:
        """Return the simulated time at which the process was created."""
        return self._arrival_tick

    def _transition(self, action: str, expected: ProcessState, target: ProcessState) -> None:
        """Enforce a state transition.

        Raises:
            RuntimeError: If the process is not in the expected state.

        """
        if self._state is not expected:
            msg = f"Cannot {action}: process {self._pid} is {self._state}, expected {expected}"
            raise RuntimeError(msg)
        self._state = target

    def dispatch(self, *, cpu_increment: int) -> None:
        """Transition READY → RUNNING and account the CPU usage bump.

        Args:
            cpu_increment: Percentage points added to cpu_usage (capped at 100).

        """
        self._transition("dispatch", ProcessState.READY, ProcessState.RUNNING)
        self._cpu_usage = min(MAX_CPU_USAGE, self._cpu_usage + cpu_increment)

    def preempt(self) -> None:
        """Transition RUNNING → READY."""
        self._transition("preempt", ProcessState.RUNNING, ProcessState.READY)

    def run_tick(self) -> bool:
        """Consume one tick of CPU work.

        Returns:
            True if the burst is now exhausted.

        Raises:
            RuntimeError: If the process is not running.

        """
        if self._state is not ProcessState.RUNNING:
            msg = f"Cannot run: process {self._pid} is {self._state}, expected running"
            raise RuntimeError(msg)
        self._remaining_burst -= 1
        return self._remaining_burst <= 0

    def terminate(self) -> None:
        """Move to TERMINATED from READY or RUNNING.

        Raises:
            RuntimeError: If the process is already terminated.

        """
        if self._state is ProcessState.TERMINATED:
            msg = f"Cannot terminate: process {self._pid} is already terminated"
            raise RuntimeError(msg)
        self._state = ProcessState.TERMINATED

    def snapshot(self) -> ProcessInfo:
        """Return an immutable copy of the process's visible fields."""
        return ProcessInfo(
            pid=self._pid,
            name=self._name,
            state=self._state,
            priority=self._priority,
            cpu_usage=self._cpu_usage,
            memory_mb=self._memory_mb,
            remaining_burst=self._remaining_burst,
            arrival_tick=self._arrival_tick,
        )

    def __repr__(self) -> str:
        """Return a debug-friendly representation."""
        return (
            f"Process(pid={self._pid}, name={self._name!r}, state={self._state}, "
            f"burst={self._remaining_burst})"
        )
