"""Process subsystem — PCB, registry, and scheduling.

Re-exports public symbols so callers can write::

    from procsim.process import Process, Scheduler, Priority
"""

from procsim.process.pcb import Priority, Process, ProcessInfo, ProcessState
from procsim.process.registry import ProcessRegistry
from procsim.process.scheduler import (
    FCFSPolicy,
    PolicyName,
    PriorityPolicy,
    Scheduler,
    SchedulingPolicy,
    SJFPolicy,
    UnknownPolicyError,
    policy_for,
)

__all__ = [
    "FCFSPolicy",
    "PolicyName",
    "Priority",
    "PriorityPolicy",
    "Process",
    "ProcessInfo",
    "ProcessRegistry",
    "ProcessState",
    "SJFPolicy",
    "Scheduler",
    "SchedulingPolicy",
    "UnknownPolicyError",
    "policy_for",
]
