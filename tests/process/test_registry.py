"""Tests for the process registry.

The registry is the insertion-ordered table of live processes.  Its
order is the arrival order FCFS relies on.
"""

import pytest

from procsim.process.pcb import Process, ProcessState
from procsim.process.registry import ProcessRegistry


def _admit(registry: ProcessRegistry, name: str, *, burst: int = 3) -> Process:
    """Create a process with the registry's next PID and admit it."""
    process = Process(pid=registry.next_pid(), name=name, burst=burst)
    registry.admit(process)
    return process


class TestPidAllocation:
    """Verify PID numbering."""

    def test_pids_are_monotonic(self) -> None:
        """Each call returns the next integer."""
        registry = ProcessRegistry()
        assert [registry.next_pid() for _ in range(3)] == [1, 2, 3]

    def test_registries_number_independently(self) -> None:
        """Two registries do not share a counter."""
        first, second = ProcessRegistry(), ProcessRegistry()
        first.next_pid()
        assert second.next_pid() == 1


class TestRegistryMembership:
    """Verify admit, lookup, and removal."""

    def test_admit_and_get(self) -> None:
        """An admitted process can be looked up."""
        registry = ProcessRegistry()
        p = _admit(registry, "a")
        assert registry.get(p.pid) is p
        assert p.pid in registry
        assert len(registry) == 1

    def test_duplicate_pid_rejected(self) -> None:
        """PIDs are unique within the registry."""
        registry = ProcessRegistry()
        p = _admit(registry, "a")
        with pytest.raises(ValueError, match="already registered"):
            registry.admit(Process(pid=p.pid, name="b", burst=1))

    def test_remove_returns_process(self) -> None:
        """Removal hands back the removed record."""
        registry = ProcessRegistry()
        p = _admit(registry, "a")
        assert registry.remove(p.pid) is p
        assert p.pid not in registry

    def test_remove_unknown_returns_none(self) -> None:
        """Removing an absent PID is harmless."""
        assert ProcessRegistry().remove(5) is None

    def test_iteration_follows_arrival_order(self) -> None:
        """Processes iterate in the order they were admitted."""
        registry = ProcessRegistry()
        names = ["c", "a", "b"]
        for name in names:
            _admit(registry, name)
        assert [p.name for p in registry] == names
        assert registry.pids() == [1, 2, 3]


class TestRegistryStateQueries:
    """Verify ready and running views."""

    def test_ready_excludes_running(self) -> None:
        """The ready view skips the running process."""
        registry = ProcessRegistry()
        a = _admit(registry, "a")
        b = _admit(registry, "b")
        a.dispatch(cpu_increment=20)
        assert registry.ready() == [b]
        assert registry.running() is a

    def test_running_is_none_when_idle(self) -> None:
        """No running process means None."""
        registry = ProcessRegistry()
        _admit(registry, "a")
        assert registry.running() is None

    def test_clear_empties_registry(self) -> None:
        """Clear drops every process."""
        registry = ProcessRegistry()
        _admit(registry, "a")
        registry.clear()
        assert len(registry) == 0
        assert all(p.state is ProcessState.READY for p in registry)
