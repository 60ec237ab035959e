"""CPU scheduler — runs the simulated processes one tick at a time.

The scheduler owns the run loop.  Each **cycle** (``schedule_next``):

1. Does nothing if the scheduler is stopped.
2. Demotes the running process back to READY.  Every cycle is a fresh
   decision, so a process only keeps the CPU if the policy picks it
   again.
3. Asks the active policy to pick one READY process.  With nothing
   ready the loop goes idle; it wakes again as soon as a process is
   added.
4. Dispatches the winner (READY → RUNNING, +CPU usage).
5. Arms a one-tick timer.  When the tick fires, the process's burst is
   decremented; an exhausted process is terminated, its memory is
   released, and it leaves the registry.  Then the next cycle starts.

Three policies ship, and the set is closed:

- **FCFSPolicy** (First Come, First Served): earliest arrival wins.
- **SJFPolicy** (Shortest Job First): smallest remaining burst wins.
- **PriorityPolicy**: highest priority wins (HIGH > MEDIUM > LOW).

All three break ties by arrival order.

Design: Strategy pattern over a closed set
    The Scheduler is the *context*; SchedulingPolicy is the *strategy*.
    ``PolicyName`` enumerates the policies and ``policy_for`` maps each
    name to its class with an exhaustive ``match``, so an unknown name
    fails fast instead of leaving the loop with nothing to select.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, ClassVar, Protocol

from procsim.clock import TickTimer
from procsim.logging import LogLevel
from procsim.process.pcb import DEFAULT_CPU_INCREMENT, Process, ProcessState

if TYPE_CHECKING:
    from collections.abc import Sequence

    from procsim.logging import Logger
    from procsim.memory.allocator import MemoryAllocator
    from procsim.process.registry import ProcessRegistry


class UnknownPolicyError(ValueError):
    """Raise when a scheduling policy name is not recognised."""


class PolicyName(StrEnum):
    """Names of the available scheduling policies."""

    FCFS = "fcfs"
    SJF = "sjf"
    PRIORITY = "priority"


class SchedulingPolicy(Protocol):
    """Interface that every scheduling algorithm must satisfy."""

    name: ClassVar[PolicyName]

    def select(self, ready: Sequence[Process]) -> Process | None:
        """Return the process to run next from *ready*, or None if empty.

        *ready* is in arrival order and must not be modified.
        """
        ...  # pragma: no cover


class FCFSPolicy:
    """First Come, First Served — processes run in arrival order.

    The simplest possible policy: whatever was registered first, and is
    still ready, goes first.  A long burst at the head of the queue
    makes everyone behind it wait (the convoy effect).
    """

    name: ClassVar[PolicyName] = PolicyName.FCFS

    def select(self, ready: Sequence[Process]) -> Process | None:
        """Return the earliest arrival."""
        return ready[0] if ready else None


class SJFPolicy:
    """Shortest Job First — least remaining work runs first.

    Minimises average waiting time when burst lengths are known, at the
    cost of starving long jobs while short ones keep arriving.
    """

    name: ClassVar[PolicyName] = PolicyName.SJF

    def select(self, ready: Sequence[Process]) -> Process | None:
        """Return the process with the smallest remaining burst."""
        # min() keeps the first of equal keys, which is the earliest arrival.
        return min(ready, key=lambda p: p.remaining_burst, default=None)


class PriorityPolicy:
    """Priority scheduling — highest priority process runs first.

    Low-priority processes can wait indefinitely while higher-priority
    work is ready.
    """

    name: ClassVar[PolicyName] = PolicyName.PRIORITY

    def select(self, ready: Sequence[Process]) -> Process | None:
        """Return the highest-priority process."""
        return max(ready, key=lambda p: p.priority, default=None)


def policy_for(name: PolicyName | str) -> SchedulingPolicy:
    """Return a fresh policy instance for *name*.

    Args:
        name: A PolicyName or its string value (case-insensitive).

    Raises:
        UnknownPolicyError: If the name matches no policy.

    """
    try:
        key = PolicyName(name.strip().lower())
    except ValueError:
        choices = ", ".join(p.value for p in PolicyName)
        msg = f"Unknown scheduling policy '{name}' (expected one of: {choices})"
        raise UnknownPolicyError(msg) from None

    match key:
        case PolicyName.FCFS:
            return FCFSPolicy()
        case PolicyName.SJF:
            return SJFPolicy()
        case PolicyName.PRIORITY:
            return PriorityPolicy()


class Scheduler:
    """The CPU scheduler — owns the run loop over the process registry.

    The scheduler does not *decide* the ordering (that is the policy's
    job) and does not own memory.  It orchestrates: it validates
    states, calls the policy, arms the tick timer, and asks the
    allocator to release memory when a process leaves the registry.
    """

    def __init__(
        self,
        *,
        registry: ProcessRegistry,
        memory: MemoryAllocator,
        policy: SchedulingPolicy | None = None,
        timer: TickTimer | None = None,
        cpu_increment: int = DEFAULT_CPU_INCREMENT,
        logger: Logger | None = None,
    ) -> None:
        """Create a stopped scheduler.

        Args:
            registry: The live process table.
            memory: The allocator that holds each process's blocks.
            policy: Selection strategy (defaults to FCFS).
            timer: The tick timer to arm (a fresh one if omitted).
            cpu_increment: CPU usage points added on each dispatch.
            logger: Optional event log.

        """
        self._registry = registry
        self._memory = memory
        self._policy: SchedulingPolicy = policy if policy is not None else FCFSPolicy()
        self._timer = timer if timer is not None else TickTimer()
        self._cpu_increment = cpu_increment
        self._logger = logger
        self._running = False
        self._current: Process | None = None
        self._context_switches = 0
        self._completed = 0
        self._last_ran: int | None = None
        self._last_terminated: int | None = None

    @property
    def policy(self) -> SchedulingPolicy:
        """Return the active scheduling policy."""
        return self._policy

    @property
    def running(self) -> bool:
        """Return True while the run loop is active."""
        return self._running

    @property
    def current(self) -> Process | None:
        """Return the process holding the CPU, or None."""
        return self._current

    @property
    def tick_pending(self) -> bool:
        """Return True if a dispatched process is waiting for its tick."""
        return self._timer.armed

    @property
    def now(self) -> int:
        """Return the current simulated time in ticks."""
        return self._timer.total_ticks

    @property
    def context_switches(self) -> int:
        """Return the total number of dispatches."""
        return self._context_switches

    @property
    def completed(self) -> int:
        """Return how many processes ran their burst to completion."""
        return self._completed

    def add(self, process: Process) -> None:
        """Append a READY process to the registry.

        If the loop is running but idle, a new cycle starts at once so
        the process does not sit unnoticed.

        Raises:
            RuntimeError: If the process is not READY.

        """
        if process.state is not ProcessState.READY:
            msg = f"Cannot add process {process.pid}: state is {process.state}, expected ready"
            raise RuntimeError(msg)
        self._registry.admit(process)
        if self._running and not self._timer.armed:
            self.schedule_next()

    def remove(self, pid: int) -> Process | None:
        """Terminate a process, release its memory, and drop it from the registry.

        Removing an unknown PID changes nothing.  Removing the running
        process cancels its pending tick; if the loop is running, the
        next cycle starts immediately.

        Returns:
            The removed process, or None if *pid* was not registered.

        """
        process = self._registry.remove(pid)
        if process is None:
            return None
        self._memory.deallocate(pid)
        if process.state is not ProcessState.TERMINATED:
            process.terminate()
        if process is self._current:
            self._current = None
            self._timer.cancel()
            if self._running:
                self.schedule_next()
        return process

    def set_policy(self, name: PolicyName | str) -> SchedulingPolicy:
        """Switch the scheduling policy.

        A running loop is stopped and restarted around the switch, so
        the running process is demoted, its pending tick is discarded,
        and the next selection uses the new policy.

        Raises:
            UnknownPolicyError: If *name* is not a known policy.  The
                active policy is left unchanged.

        """
        try:
            policy = policy_for(name)
        except UnknownPolicyError as e:
            self._log(LogLevel.ERROR, str(e))
            raise
        was_running = self._running
        if was_running:
            self.stop()
        self._policy = policy
        self._log(LogLevel.INFO, f"Policy set to {policy.name}")
        if was_running:
            self.start()
        return policy

    def start(self) -> None:
        """Start the run loop.  Starting a running loop does nothing."""
        if self._running:
            return
        self._running = True
        self._log(LogLevel.INFO, f"Scheduler started ({self._policy.name})")
        self.schedule_next()

    def stop(self) -> None:
        """Stop the run loop, demote the running process, and cancel its tick."""
        if self._current is not None:
            self._current.preempt()
            self._current = None
        self._timer.cancel()
        if self._running:
            self._running = False
            self._log(LogLevel.INFO, "Scheduler stopped")

    def schedule_next(self) -> Process | None:
        """Run one scheduling cycle.

        Returns:
            The newly dispatched process, or None if the loop is
            stopped or no process is ready.

        """
        if not self._running:
            return None
        if self._current is not None:
            self._current.preempt()
            self._current = None
        self._timer.cancel()

        process = self._policy.select(self._registry.ready())
        if process is None:
            return None
        process.dispatch(cpu_increment=self._cpu_increment)
        self._current = process
        self._context_switches += 1
        self._log(LogLevel.DEBUG, f"Dispatched pid {process.pid} ({process.name})")
        self._timer.arm(self._on_tick)
        return process

    def tick(self) -> dict[str, int | None]:
        """Advance simulated time by one tick.

        Returns:
            Dict with the new ``tick`` number, the PID that ``ran`` on
            this tick, and the PID that ``terminated`` (either may be None).

        """
        self._last_ran = None
        self._last_terminated = None
        self._timer.advance()
        return {
            "tick": self._timer.total_ticks,
            "ran": self._last_ran,
            "terminated": self._last_terminated,
        }

    def _on_tick(self) -> None:
        """Charge the running process one tick, then start the next cycle."""
        process = self._current
        assert process is not None, "Tick fired with no running process"  # noqa: S101
        self._last_ran = process.pid
        if process.run_tick():
            self._current = None
            process.terminate()
            self.remove(process.pid)
            self._completed += 1
            self._last_terminated = process.pid
            self._log(LogLevel.INFO, f"Process {process.pid} ({process.name}) completed")
        self.schedule_next()

    def _log(self, level: LogLevel, message: str) -> None:
        """Record a scheduler event if a logger is attached."""
        if self._logger is not None:
            self._logger.log(level, message, source="scheduler", tick=self._timer.total_ticks)
