"""The simulation engine — owner of every subsystem.

A ``Simulation`` holds one memory allocator, one process registry, one
scheduler, and one event log.  Nothing is module-global, so any number
of simulations can run side by side and each test gets a clean one.

Lifecycle::

    SHUTDOWN  →  boot()  →  RUNNING  →  shutdown()  →  SHUTDOWN

Boot sequence (order matters):
    0. Logger: capture events from the start.
    1. Memory allocator: processes cannot exist without memory.
    2. Process registry: the table the scheduler works on.
    3. Scheduler: owns the tick timer and the run loop.

Shutdown tears the same subsystems down in reverse order.

Process creation is the one operation that spans subsystems: the
allocator must reserve memory *before* the registry admits the
process.  If the allocator refuses, ``AllocationFailedError`` reaches
the caller and nothing else has changed.

Every public method runs under one re-entrant lock.  A background
clock driver calling ``tick()`` and a web request calling
``create_process()`` are therefore applied one after the other, exactly
as if a single thread had issued them.
"""

from __future__ import annotations

import random
import threading
from collections.abc import Generator
from contextlib import contextmanager
from enum import StrEnum
from time import monotonic
from typing import Any

from procsim.config import SimulationConfig
from procsim.logging import Logger, LogLevel
from procsim.memory.allocator import AllocationFailedError, MemoryAllocator, MemorySnapshot
from procsim.process.pcb import Priority, Process, ProcessInfo
from procsim.process.registry import ProcessRegistry
from procsim.process.scheduler import PolicyName, Scheduler, policy_for

DEFAULT_IDLE_LIMIT = 10_000
_LOG_CAPACITY = 1000


class SimulationState(StrEnum):
    """Lifecycle phases of a simulation."""

    SHUTDOWN = "shutdown"
    RUNNING = "running"


class Simulation:
    """Coordinate the allocator, registry, and scheduler.

    Subsystem references are None while the simulation is shut down
    and are created during boot.
    """

    def __init__(self, *, config: SimulationConfig | None = None) -> None:
        """Create a simulation in the SHUTDOWN state.

        Args:
            config: Settings to boot with (defaults to the reference sizing).

        """
        self._config = config if config is not None else SimulationConfig()
        self._state = SimulationState.SHUTDOWN
        self._lock = threading.RLock()
        self._rng = random.Random(self._config.seed)  # noqa: S311
        self._boot_time: float | None = None
        self._logger: Logger | None = None
        self._memory: MemoryAllocator | None = None
        self._registry: ProcessRegistry | None = None
        self._scheduler: Scheduler | None = None
        self._boot_log: list[str] = []
        self._total_created = 0
        self._total_rejected = 0
        self._total_killed = 0

    # -- Read-only accessors ----------------------------------------------

    @property
    def config(self) -> SimulationConfig:
        """Return the simulation's configuration."""
        return self._config

    @property
    def state(self) -> SimulationState:
        """Return the current lifecycle state."""
        return self._state

    @property
    def lock(self) -> threading.RLock:
        """Return the lock that serializes every public operation."""
        return self._lock

    @property
    def logger(self) -> Logger | None:
        """Return the event log, or None if not booted."""
        return self._logger

    @property
    def allocator(self) -> MemoryAllocator | None:
        """Return the memory allocator, or None if not booted."""
        return self._memory

    @property
    def registry(self) -> ProcessRegistry | None:
        """Return the process registry, or None if not booted."""
        return self._registry

    @property
    def scheduler(self) -> Scheduler | None:
        """Return the scheduler, or None if not booted."""
        return self._scheduler

    @property
    def uptime(self) -> float:
        """Return wall-clock seconds since boot (0.0 if not booted)."""
        if self._boot_time is None:
            return 0.0
        return monotonic() - self._boot_time

    def dmesg(self) -> list[str]:
        """Return the boot log."""
        return list(self._boot_log)

    # -- Lifecycle --------------------------------------------------------

    @contextmanager
    def _running(self) -> Generator[Scheduler]:
        """Hold the lock and yield the scheduler of a booted simulation.

        Raises:
            RuntimeError: If the simulation is not running.

        """
        with self._lock:
            if self._state is not SimulationState.RUNNING or self._scheduler is None:
                msg = f"Simulation is not running (state: {self._state})"
                raise RuntimeError(msg)
            yield self._scheduler

    def boot(self) -> None:
        """Build every subsystem and enter the RUNNING state.

        Raises:
            RuntimeError: If the simulation is already running.

        """
        with self._lock:
            if self._state is not SimulationState.SHUTDOWN:
                msg = f"Cannot boot: simulation is {self._state}, expected shutdown"
                raise RuntimeError(msg)
            cfg = self._config
            self._boot_time = monotonic()

            self._logger = Logger(capacity=_LOG_CAPACITY)
            self._boot_log.append("[OK] Logger")

            self._memory = MemoryAllocator(
                total_mb=cfg.total_memory_mb,
                block_count=cfg.block_count,
                accounting=cfg.accounting,
            )
            self._boot_log.append(
                f"[OK] Memory allocator ({cfg.total_memory_mb} MB, {cfg.block_count} blocks)"
            )

            self._registry = ProcessRegistry()
            self._boot_log.append("[OK] Process registry")

            self._scheduler = Scheduler(
                registry=self._registry,
                memory=self._memory,
                policy=policy_for(cfg.policy),
                cpu_increment=cfg.cpu_increment,
                logger=self._logger,
            )
            self._boot_log.append(f"[OK] Scheduler ({cfg.policy})")

            self._state = SimulationState.RUNNING
            self._logger.log(LogLevel.INFO, "Simulation boot complete", source="kernel")

    def shutdown(self) -> None:
        """Stop the scheduler and tear down every subsystem.

        Raises:
            RuntimeError: If the simulation is not running.

        """
        with self._running() as scheduler:
            scheduler.stop()
            self._scheduler = None
            if self._registry is not None:
                self._registry.clear()
            self._registry = None
            if self._memory is not None:
                self._memory.reset()
            self._memory = None
            self._logger = None
            self._boot_log.clear()
            self._boot_time = None
            self._total_created = 0
            self._total_rejected = 0
            self._total_killed = 0
            self._state = SimulationState.SHUTDOWN

    # -- Process operations -----------------------------------------------

    def create_process(
        self,
        *,
        name: str | None = None,
        priority: Priority | str | int | None = None,
        memory_mb: int | None = None,
        burst: int | None = None,
    ) -> Process:
        """Create a process, reserve its memory, and admit it.

        Any value left as None is generated: the name from the PID,
        the priority uniformly at random, and the memory and burst
        sizes from the configured ranges.

        Args:
            name: Display name.
            priority: LOW/MEDIUM/HIGH, or its name or number.
            memory_mb: Memory request in megabytes.
            burst: Ticks of work to perform.

        Returns:
            The admitted process (READY).

        Raises:
            AllocationFailedError: If no contiguous run of blocks fits
                the request.  Nothing is admitted.
            ValueError: If a supplied value is invalid.
            RuntimeError: If the simulation is not running.

        """
        with self._running() as scheduler:
            assert self._memory is not None  # noqa: S101
            assert self._registry is not None  # noqa: S101
            assert self._logger is not None  # noqa: S101
            cfg = self._config

            resolved_priority = (
                self._rng.choice(list(Priority)) if priority is None else Priority.parse(priority)
            )
            if memory_mb is None:
                memory_mb = self._rng.randint(*cfg.memory_range_mb)
            if burst is None:
                burst = self._rng.randint(*cfg.burst_range)

            pid = self._registry.next_pid()
            process = Process(
                pid=pid,
                name=name if name is not None else f"Process_{pid}",
                burst=burst,
                memory_mb=memory_mb,
                priority=resolved_priority,
                arrival_tick=scheduler.now,
            )

            try:
                blocks = self._memory.allocate(pid, memory_mb=memory_mb)
            except AllocationFailedError as e:
                self._total_rejected += 1
                self._logger.log(LogLevel.WARNING, str(e), source="memory", tick=scheduler.now)
                raise

            scheduler.add(process)
            self._total_created += 1
            self._logger.log(
                LogLevel.INFO,
                f"Created pid {pid} ({process.name}, {resolved_priority}, "
                f"{memory_mb} MB in {len(blocks)} blocks, burst {burst})",
                source="kernel",
                tick=scheduler.now,
            )
            return process

    def terminate_process(self, pid: int) -> bool:
        """Kill a process, releasing its memory exactly as natural exit does.

        Killing an unknown PID is not an error.

        Returns:
            True if a process was terminated, False if none had *pid*.

        """
        with self._running() as scheduler:
            assert self._logger is not None  # noqa: S101
            process = scheduler.remove(pid)
            if process is None:
                return False
            self._total_killed += 1
            self._logger.log(
                LogLevel.INFO,
                f"Killed pid {pid} ({process.name})",
                source="kernel",
                tick=scheduler.now,
            )
            return True

    def get_process(self, pid: int) -> ProcessInfo | None:
        """Return a snapshot of the process with *pid*, or None."""
        with self._running():
            assert self._registry is not None  # noqa: S101
            process = self._registry.get(pid)
            return process.snapshot() if process is not None else None

    def processes(self) -> list[ProcessInfo]:
        """Return snapshots of every live process in arrival order."""
        with self._running():
            assert self._registry is not None  # noqa: S101
            return [p.snapshot() for p in self._registry]

    def memory(self) -> MemorySnapshot:
        """Return a snapshot of the block table and usage counters."""
        with self._running():
            assert self._memory is not None  # noqa: S101
            return self._memory.snapshot()

    # -- Scheduling -------------------------------------------------------

    @property
    def policy(self) -> PolicyName:
        """Return the active scheduling policy's name."""
        with self._running() as scheduler:
            return scheduler.policy.name

    def set_policy(self, name: PolicyName | str) -> PolicyName:
        """Switch the scheduling policy, restarting the loop if it runs.

        Raises:
            UnknownPolicyError: If *name* is not a known policy.

        """
        with self._running() as scheduler:
            return scheduler.set_policy(name).name

    def start(self) -> None:
        """Start the scheduler's run loop."""
        with self._running() as scheduler:
            scheduler.start()

    def stop(self) -> None:
        """Pause the scheduler's run loop."""
        with self._running() as scheduler:
            scheduler.stop()

    @property
    def is_scheduling(self) -> bool:
        """Return True while the scheduler's run loop is active."""
        with self._lock:
            return self._scheduler is not None and self._scheduler.running

    @property
    def cpu_usage(self) -> int:
        """Return the running process's CPU usage, or 0 when idle."""
        with self._running() as scheduler:
            current = scheduler.current
            return current.cpu_usage if current is not None else 0

    def tick(self) -> dict[str, int | None]:
        """Advance simulated time by one tick.

        Returns:
            Dict with ``tick``, the PID that ``ran``, and the PID that
            ``terminated`` (None when nothing did).

        """
        with self._running() as scheduler:
            return scheduler.tick()

    def run(self, ticks: int) -> list[dict[str, int | None]]:
        """Advance simulated time by *ticks* ticks.

        Raises:
            ValueError: If ticks is negative.

        """
        if ticks < 0:
            msg = f"Tick count must not be negative, got {ticks}"
            raise ValueError(msg)
        with self._lock:
            return [self.tick() for _ in range(ticks)]

    def run_until_idle(self, *, limit: int = DEFAULT_IDLE_LIMIT) -> list[dict[str, int | None]]:
        """Tick until no process is waiting for a tick, or *limit* ticks pass."""
        results: list[dict[str, int | None]] = []
        with self._running() as scheduler:
            while scheduler.tick_pending and len(results) < limit:
                results.append(scheduler.tick())
        return results

    # -- Dashboards -------------------------------------------------------

    def sysinfo(self) -> dict[str, Any]:
        """Return a summary of the whole simulation for status displays."""
        with self._running() as scheduler:
            assert self._memory is not None  # noqa: S101
            assert self._registry is not None  # noqa: S101
            assert self._logger is not None  # noqa: S101
            current = scheduler.current
            snapshot = self._memory.snapshot()
            return {
                "tick": scheduler.now,
                "uptime": self.uptime,
                "policy": str(scheduler.policy.name),
                "scheduling": scheduler.running,
                "current_pid": current.pid if current is not None else None,
                "cpu_usage": current.cpu_usage if current is not None else 0,
                "process_count": len(self._registry),
                "ready_count": len(self._registry.ready()),
                "memory_used_mb": snapshot.used_mb,
                "memory_free_mb": snapshot.free_mb,
                "memory_total_mb": snapshot.total_mb,
                "memory_usage_percent": snapshot.usage_percent,
                "free_blocks": self._memory.free_blocks,
                "largest_free_run": self._memory.largest_free_run,
                "context_switches": scheduler.context_switches,
                "total_created": self._total_created,
                "total_completed": scheduler.completed,
                "total_killed": self._total_killed,
                "total_rejected": self._total_rejected,
                "log_count": len(self._logger),
            }
