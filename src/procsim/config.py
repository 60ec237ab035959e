"""Simulation configuration.

All tunables live in one immutable ``SimulationConfig`` that is handed
to the simulation at construction time.  Nothing here is global state:
two simulations with different configs can run side by side.

The module-level ``DEFAULT_*`` constants describe the reference sizing
(1 GiB split into 32 blocks, one-second ticks).
"""

from dataclasses import dataclass

from procsim.memory.allocator import UsageAccounting
from procsim.process.pcb import DEFAULT_CPU_INCREMENT
from procsim.process.scheduler import PolicyName

DEFAULT_TOTAL_MEMORY_MB = 1024
DEFAULT_BLOCK_COUNT = 32
DEFAULT_TICK_SECONDS = 1.0

# Ranges used when a process is created without explicit sizes,
# inclusive on both ends.
MEMORY_RANGE_MB = (50, 150)
BURST_RANGE = (5, 15)


@dataclass(frozen=True)
class SimulationConfig:
    """Immutable bundle of simulation settings.

    Attributes:
        total_memory_mb: Capacity of the simulated memory.
        block_count: Number of equal blocks the memory is split into.
        tick_seconds: Wall-clock length of one tick for the real-time driver.
        cpu_increment: CPU usage percentage added on every dispatch.
        policy: Scheduling policy active after boot.
        accounting: How used memory is reconciled after a release.
        memory_range_mb: Bounds for randomly sized processes.
        burst_range: Bounds for randomly chosen burst lengths.
        seed: Seed for the random generator (None = nondeterministic).

    """

    total_memory_mb: int = DEFAULT_TOTAL_MEMORY_MB
    block_count: int = DEFAULT_BLOCK_COUNT
    tick_seconds: float = DEFAULT_TICK_SECONDS
    cpu_increment: int = DEFAULT_CPU_INCREMENT
    policy: PolicyName = PolicyName.FCFS
    accounting: UsageAccounting = UsageAccounting.EXACT
    memory_range_mb: tuple[int, int] = MEMORY_RANGE_MB
    burst_range: tuple[int, int] = BURST_RANGE
    seed: int | None = None

    def __post_init__(self) -> None:
        """Reject settings the simulation cannot run with.

        Raises:
            ValueError: If any value is out of range.

        """
        if self.total_memory_mb <= 0:
            msg = f"total_memory_mb must be positive, got {self.total_memory_mb}"
            raise ValueError(msg)
        if self.block_count <= 0:
            msg = f"block_count must be positive, got {self.block_count}"
            raise ValueError(msg)
        if self.tick_seconds <= 0:
            msg = f"tick_seconds must be positive, got {self.tick_seconds}"
            raise ValueError(msg)
        if not 0 <= self.cpu_increment <= 100:  # noqa: PLR2004
            msg = f"cpu_increment must be within 0..100, got {self.cpu_increment}"
            raise ValueError(msg)
        for label, (low, high), floor in (
            ("memory_range_mb", self.memory_range_mb, 0),
            ("burst_range", self.burst_range, 1),
        ):
            if low < floor or low > high:
                msg = f"{label} must satisfy {floor} <= low <= high, got ({low}, {high})"
                raise ValueError(msg)
