"""Memory allocator — first-fit allocation over a fixed block table.

Simulated memory is split into ``block_count`` equal **blocks**.  Each
block is either free (``None``) or tagged with the PID that owns it.
A process receives one **contiguous run** of blocks large enough to
hold its request:

    blocks needed = ceil(memory_mb / block_size_mb)

The search policy is **first-fit**: scan left to right and take the
first run of free blocks that is long enough.  There is no compaction
and no best-fit fallback, so a fragmented table can refuse a request
even when the total free space would be sufficient.  That refusal is
the point of the exercise: it makes **external fragmentation** visible.

Usage accounting
    ``used_mb`` tracks requested megabytes, not block-rounded ones.
    Under ``UsageAccounting.EXACT`` it is always the sum of the live
    requests.  Under ``UsageAccounting.BLOCKS`` a release recomputes it
    from the proportion of tagged blocks, which drifts from the exact
    sum whenever requests don't fill their last block.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum


class AllocationFailedError(Exception):
    """Raise when no contiguous run of free blocks can hold a request."""


class UsageAccounting(StrEnum):
    """How ``used_mb`` is reconciled after a release.

    - EXACT: the sum of requested MB of every live allocation.
    - BLOCKS: recomputed from the fraction of tagged blocks on release.
    """

    EXACT = "exact"
    BLOCKS = "blocks"


@dataclass(frozen=True)
class MemorySnapshot:
    """Read-only view of the block table for presentation layers.

    Attributes:
        blocks: Owner PID per block, or None for a free block.
        used_mb: Megabytes reported as in use.
        total_mb: Total capacity in megabytes.
        block_size_mb: Size of one block in megabytes.

    """

    blocks: tuple[int | None, ...]
    used_mb: int
    total_mb: int
    block_size_mb: float

    @property
    def free_mb(self) -> int:
        """Return the megabytes not reported as used."""
        return self.total_mb - self.used_mb

    @property
    def usage_percent(self) -> int:
        """Return used memory as a whole percentage of capacity."""
        return round(self.used_mb / self.total_mb * 100)


class MemoryAllocator:
    """Allocate and release contiguous block runs per process.

    The allocator owns two data structures:
    - The **block table**: one slot per block, holding the owner PID.
    - The **request table**: PID → requested MB, for usage accounting.
    """

    def __init__(
        self,
        *,
        total_mb: int,
        block_count: int,
        accounting: UsageAccounting = UsageAccounting.EXACT,
    ) -> None:
        """Create an allocator with every block free.

        Args:
            total_mb: Total simulated memory in megabytes.
            block_count: Number of equal blocks to divide it into.
            accounting: Reconciliation mode for ``used_mb``.

        Raises:
            ValueError: If either size is not positive.

        """
        if total_mb <= 0 or block_count <= 0:
            msg = f"Memory sizes must be positive (total_mb={total_mb}, block_count={block_count})"
            raise ValueError(msg)
        self._total_mb = total_mb
        self._blocks: list[int | None] = [None] * block_count
        self._accounting = accounting
        self._requests: dict[int, int] = {}
        self._used_mb = 0

    @property
    def total_mb(self) -> int:
        """Return the total capacity in megabytes."""
        return self._total_mb

    @property
    def block_count(self) -> int:
        """Return the number of blocks in the table."""
        return len(self._blocks)

    @property
    def block_size_mb(self) -> float:
        """Return the size of one block in megabytes."""
        return self._total_mb / len(self._blocks)

    @property
    def accounting(self) -> UsageAccounting:
        """Return the usage reconciliation mode."""
        return self._accounting

    @property
    def used_mb(self) -> int:
        """Return the megabytes currently reported as used."""
        return self._used_mb

    @property
    def free_mb(self) -> int:
        """Return the megabytes not reported as used."""
        return self._total_mb - self._used_mb

    @property
    def blocks(self) -> list[int | None]:
        """Return a copy of the block table (owner PID or None per block)."""
        return list(self._blocks)

    @property
    def free_blocks(self) -> int:
        """Return the number of untagged blocks."""
        return self._blocks.count(None)

    @property
    def largest_free_run(self) -> int:
        """Return the length of the longest run of free blocks.

        Any request needing more blocks than this will fail, however
        many blocks are free in total.
        """
        best = run = 0
        for owner in self._blocks:
            run = run + 1 if owner is None else 0
            best = max(best, run)
        return best

    def blocks_needed(self, memory_mb: int) -> int:
        """Return how many blocks a request of *memory_mb* occupies.

        Computed in integer arithmetic as
        ``ceil(memory_mb * block_count / total_mb)``, which equals
        ``ceil(memory_mb / block_size_mb)`` without float rounding.

        Raises:
            ValueError: If memory_mb is negative.

        """
        if memory_mb < 0:
            msg = f"Memory request must not be negative, got {memory_mb}"
            raise ValueError(msg)
        return -(-memory_mb * len(self._blocks) // self._total_mb)

    def blocks_for(self, pid: int) -> list[int]:
        """Return the indices of every block tagged with *pid*."""
        return [i for i, owner in enumerate(self._blocks) if owner == pid]

    def owns(self, pid: int) -> bool:
        """Return True if *pid* holds an allocation (even a zero-block one)."""
        return pid in self._requests

    def find_run(self, length: int) -> int | None:
        """Return the start of the first free run of *length* blocks, or None.

        This is the first-fit scan: a single left-to-right pass that
        resets its counter on every tagged block.
        """
        if length == 0:
            return 0
        run = 0
        for i, owner in enumerate(self._blocks):
            if owner is not None:
                run = 0
                continue
            run += 1
            if run == length:
                return i - length + 1
        return None

    def allocate(self, pid: int, *, memory_mb: int) -> range:
        """Reserve a contiguous run of blocks for a process.

        Args:
            pid: The process requesting memory.
            memory_mb: Requested size in megabytes.

        Returns:
            The range of block indices now tagged with *pid* (empty for
            a zero-sized request).

        Raises:
            AllocationFailedError: If no free run is long enough.  The
                block table is left untouched.
            ValueError: If *pid* already holds memory or the request is
                negative.

        """
        if pid in self._requests:
            msg = f"PID {pid} already holds an allocation"
            raise ValueError(msg)
        needed = self.blocks_needed(memory_mb)
        start = self.find_run(needed)
        if start is None:
            msg = (
                f"Cannot allocate {memory_mb} MB ({needed} blocks) for PID {pid}: "
                f"largest free run is {self.largest_free_run} blocks"
            )
            raise AllocationFailedError(msg)

        run = range(start, start + needed)
        for i in run:
            self._blocks[i] = pid
        self._requests[pid] = memory_mb
        self._used_mb += memory_mb
        return run

    def deallocate(self, pid: int) -> int:
        """Release every block tagged with *pid*.

        Blocks are cleared wherever they are found, so this does not
        depend on the run being contiguous.  Releasing a PID that holds
        nothing is a no-op.

        Args:
            pid: The process whose memory to release.

        Returns:
            The number of blocks released.

        """
        if pid not in self._requests:
            return 0
        released = 0
        for i, owner in enumerate(self._blocks):
            if owner == pid:
                self._blocks[i] = None
                released += 1
        requested = self._requests.pop(pid)

        match self._accounting:
            case UsageAccounting.EXACT:
                self._used_mb -= requested
            case UsageAccounting.BLOCKS:
                tagged = len(self._blocks) - self.free_blocks
                self._used_mb = round(tagged / len(self._blocks) * self._total_mb)
        return released

    def live_pids(self) -> set[int]:
        """Return the PIDs that currently hold an allocation."""
        return set(self._requests)

    def reset(self) -> None:
        """Free every block and zero the usage counter."""
        self._blocks = [None] * len(self._blocks)
        self._requests.clear()
        self._used_mb = 0

    def snapshot(self) -> MemorySnapshot:
        """Return an immutable view of the current block table."""
        return MemorySnapshot(
            blocks=tuple(self._blocks),
            used_mb=self._used_mb,
            total_mb=self._total_mb,
            block_size_mb=self.block_size_mb,
        )


def render_blocks(blocks: Sequence[int | None], *, width: int = 16) -> str:
    """Render a block table as rows of ``#`` (used) and ``.`` (free).

    Args:
        blocks: Owner PID or None per block.
        width: Blocks per output row.

    Returns:
        A multi-line string, one row per *width* blocks.

    """
    cells = "".join("." if owner is None else "#" for owner in blocks)
    return "\n".join(cells[i : i + width] for i in range(0, len(cells), width))
