"""Memory subsystem — first-fit block allocation.

Re-exports public symbols so callers can write::

    from procsim.memory import MemoryAllocator, AllocationFailedError
"""

from procsim.memory.allocator import (
    AllocationFailedError,
    MemoryAllocator,
    MemorySnapshot,
    UsageAccounting,
    render_blocks,
)

__all__ = [
    "AllocationFailedError",
    "MemoryAllocator",
    "MemorySnapshot",
    "UsageAccounting",
    "render_blocks",
]
