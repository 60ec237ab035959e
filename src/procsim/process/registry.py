"""Process registry — the canonical table of live processes.

The registry maps PID → Process and preserves insertion order, which
doubles as arrival order for FCFS scheduling.  It also hands out PIDs
from its own counter, so two simulations never share numbering.

Invariant: at most one registered process is RUNNING.
"""

from collections.abc import Iterator
from itertools import count

from procsim.process.pcb import Process, ProcessState


class ProcessRegistry:
    """Insertion-ordered collection of live processes."""

    def __init__(self, *, first_pid: int = 1) -> None:
        """Create an empty registry.

        Args:
            first_pid: The first PID that ``next_pid()`` will return.

        """
        self._processes: dict[int, Process] = {}
        self._pid_counter = count(start=first_pid)

    def next_pid(self) -> int:
        """Return a fresh PID that has never been issued by this registry."""
        return next(self._pid_counter)

    def admit(self, process: Process) -> None:
        """Append a process to the registry.

        Raises:
            ValueError: If the PID is already registered.

        """
        if process.pid in self._processes:
            msg = f"PID {process.pid} is already registered"
            raise ValueError(msg)
        self._processes[process.pid] = process

    def remove(self, pid: int) -> Process | None:
        """Remove and return the process with *pid*, or None if absent."""
        return self._processes.pop(pid, None)

    def get(self, pid: int) -> Process | None:
        """Return the process with *pid*, or None if absent."""
        return self._processes.get(pid)

    def __contains__(self, pid: object) -> bool:
        """Return True if *pid* is registered."""
        return pid in self._processes

    def __len__(self) -> int:
        """Return the number of registered processes."""
        return len(self._processes)

    def __iter__(self) -> Iterator[Process]:
        """Iterate processes in arrival order."""
        return iter(list(self._processes.values()))

    def pids(self) -> list[int]:
        """Return registered PIDs in arrival order."""
        return list(self._processes)

    def ready(self) -> list[Process]:
        """Return the READY processes in arrival order."""
        return [p for p in self._processes.values() if p.state is ProcessState.READY]

    def running(self) -> Process | None:
        """Return the RUNNING process, or None if the CPU is idle."""
        running = [p for p in self._processes.values() if p.state is ProcessState.RUNNING]
        assert len(running) <= 1, f"More than one running process: {running}"  # noqa: S101
        return running[0] if running else None

    def clear(self) -> None:
        """Drop every registered process (the PID counter keeps counting)."""
        self._processes.clear()
