"""Tests for the scheduler and its policies.

The scheduler runs one cycle per tick: demote the running process,
let the policy pick a READY one, dispatch it, and arm the tick timer.
When the tick fires the process loses one unit of burst; an exhausted
process is terminated, its memory released, and it leaves the registry.

Policies:
- FCFS: earliest arrival.
- SJF: smallest remaining burst, arrival order on ties.
- Priority: highest priority, arrival order on ties.
"""

import pytest

from procsim.clock import TickTimer
from procsim.logging import Logger, LogLevel
from procsim.memory.allocator import MemoryAllocator
from procsim.process.pcb import Priority, Process, ProcessState
from procsim.process.registry import ProcessRegistry
from procsim.process.scheduler import (
    FCFSPolicy,
    PolicyName,
    PriorityPolicy,
    Scheduler,
    SJFPolicy,
    UnknownPolicyError,
    policy_for,
)

MEMORY_MB = 64
CPU_STEP = 20


class _Rig:
    """A scheduler wired to its own registry, allocator, and logger."""

    def __init__(self, policy: PolicyName | str = PolicyName.FCFS) -> None:
        self.registry = ProcessRegistry()
        self.memory = MemoryAllocator(total_mb=1024, block_count=32)
        self.logger = Logger()
        self.timer = TickTimer()
        self.scheduler = Scheduler(
            registry=self.registry,
            memory=self.memory,
            policy=policy_for(policy),
            timer=self.timer,
            cpu_increment=CPU_STEP,
            logger=self.logger,
        )

    def spawn(self, name: str, *, burst: int, priority: Priority = Priority.MEDIUM) -> Process:
        """Allocate memory for a new process, then add it."""
        pid = self.registry.next_pid()
        self.memory.allocate(pid, memory_mb=MEMORY_MB)
        process = Process(pid=pid, name=name, burst=burst, memory_mb=MEMORY_MB, priority=priority)
        self.scheduler.add(process)
        return process

    def spawn_reference_set(self) -> tuple[Process, Process, Process]:
        """Bursts 8, 3, 5 with priorities LOW, HIGH, MEDIUM."""
        return (
            self.spawn("long", burst=8, priority=Priority.LOW),
            self.spawn("short", burst=3, priority=Priority.HIGH),
            self.spawn("mid", burst=5, priority=Priority.MEDIUM),
        )


class TestPolicyLookup:
    """Verify the closed set of policy names."""

    @pytest.mark.parametrize(
        ("name", "policy_type"),
        [("fcfs", FCFSPolicy), ("sjf", SJFPolicy), ("priority", PriorityPolicy)],
    )
    def test_known_names_map_to_policies(self, name: str, policy_type: type) -> None:
        """Every PolicyName has a policy class."""
        assert isinstance(policy_for(name), policy_type)

    def test_lookup_is_case_insensitive(self) -> None:
        """Names are normalised before lookup."""
        assert policy_for(" SJF ").name is PolicyName.SJF

    def test_unknown_name_fails_fast(self) -> None:
        """An unrecognised policy is rejected."""
        with pytest.raises(UnknownPolicyError, match="round-robin"):
            policy_for("round-robin")

    def test_unknown_policy_error_is_value_error(self) -> None:
        """Callers can catch it as a ValueError."""
        assert issubclass(UnknownPolicyError, ValueError)


class TestPolicySelection:
    """Verify each policy's choice over a fixed ready set."""

    def test_fcfs_picks_first_arrival(self) -> None:
        """FCFS ignores burst and priority."""
        rig = _Rig(PolicyName.FCFS)
        long, _short, _mid = rig.spawn_reference_set()
        rig.scheduler.start()
        assert rig.scheduler.current is long

    def test_sjf_picks_shortest_burst(self) -> None:
        """SJF picks the burst-3 process."""
        rig = _Rig(PolicyName.SJF)
        _long, short, _mid = rig.spawn_reference_set()
        rig.scheduler.start()
        assert rig.scheduler.current is short

    def test_priority_picks_highest(self) -> None:
        """Priority picks the HIGH process."""
        rig = _Rig(PolicyName.PRIORITY)
        _long, short, _mid = rig.spawn_reference_set()
        rig.scheduler.start()
        assert rig.scheduler.current is short

    def test_sjf_ties_break_by_arrival(self) -> None:
        """Equal bursts go in arrival order."""
        rig = _Rig(PolicyName.SJF)
        first = rig.spawn("a", burst=2)
        rig.spawn("b", burst=2)
        rig.scheduler.start()
        assert rig.scheduler.current is first

    def test_priority_ties_break_by_arrival(self) -> None:
        """Equal priorities go in arrival order."""
        rig = _Rig(PolicyName.PRIORITY)
        rig.spawn("low", burst=2, priority=Priority.LOW)
        first_high = rig.spawn("h1", burst=2, priority=Priority.HIGH)
        rig.spawn("h2", burst=2, priority=Priority.HIGH)
        rig.scheduler.start()
        assert rig.scheduler.current is first_high

    def test_policies_return_none_for_empty_set(self) -> None:
        """An empty ready set is not an error."""
        for policy in (FCFSPolicy(), SJFPolicy(), PriorityPolicy()):
            assert policy.select([]) is None


class TestRunLoop:
    """Verify ticking, termination, and the self-sustaining loop."""

    def test_start_dispatches_and_arms_tick(self) -> None:
        """Starting picks a process and waits for the tick."""
        rig = _Rig()
        p = rig.spawn("a", burst=2)
        rig.scheduler.start()
        assert p.state is ProcessState.RUNNING
        assert p.cpu_usage == CPU_STEP
        assert rig.scheduler.tick_pending

    def test_tick_decrements_running_process(self) -> None:
        """One tick is one unit of burst."""
        rig = _Rig()
        p = rig.spawn("a", burst=3)
        rig.scheduler.start()
        result = rig.scheduler.tick()
        assert result == {"tick": 1, "ran": p.pid, "terminated": None}
        assert p.remaining_burst == 2  # noqa: PLR2004

    def test_each_cycle_redispatches_and_adds_cpu(self) -> None:
        """The running process is demoted and picked again each cycle."""
        rig = _Rig()
        p = rig.spawn("a", burst=3)
        rig.scheduler.start()
        rig.scheduler.tick()
        assert p.state is ProcessState.RUNNING
        assert p.cpu_usage == 2 * CPU_STEP
        assert rig.scheduler.context_switches == 2  # noqa: PLR2004

    def test_burst_of_one_terminates_after_one_tick(self) -> None:
        """The process is terminated, removed, and its memory freed."""
        rig = _Rig()
        p = rig.spawn("a", burst=1)
        rig.scheduler.start()
        result = rig.scheduler.tick()
        assert result["terminated"] == p.pid
        assert p.state is ProcessState.TERMINATED
        assert p.pid not in rig.registry
        assert rig.memory.blocks_for(p.pid) == []
        assert rig.scheduler.completed == 1

    def test_loop_moves_to_next_process_after_completion(self) -> None:
        """FCFS runs the head to completion, then the next arrival."""
        rig = _Rig()
        a = rig.spawn("a", burst=2)
        b = rig.spawn("b", burst=1)
        rig.scheduler.start()
        ran = [rig.scheduler.tick()["ran"] for _ in range(3)]
        assert ran == [a.pid, a.pid, b.pid]
        assert len(rig.registry) == 0

    def test_loop_goes_idle_when_nothing_ready(self) -> None:
        """With an empty registry, ticks do nothing."""
        rig = _Rig()
        rig.scheduler.start()
        assert rig.scheduler.current is None
        assert not rig.scheduler.tick_pending
        assert rig.scheduler.tick() == {"tick": 1, "ran": None, "terminated": None}

    def test_add_while_idle_rearms_loop(self) -> None:
        """A process added to an idle running loop is dispatched at once."""
        rig = _Rig()
        rig.scheduler.start()
        p = rig.spawn("late", burst=1)
        assert rig.scheduler.current is p
        assert rig.scheduler.tick_pending

    def test_add_while_busy_waits_for_next_cycle(self) -> None:
        """A new arrival does not interrupt a pending tick."""
        rig = _Rig()
        a = rig.spawn("a", burst=3)
        rig.scheduler.start()
        rig.spawn("b", burst=1)
        assert rig.scheduler.current is a

    def test_sjf_switches_to_shorter_arrival_at_next_cycle(self) -> None:
        """A shorter job arriving mid-run wins the next selection."""
        rig = _Rig(PolicyName.SJF)
        rig.spawn("a", burst=5)
        rig.scheduler.start()
        short = rig.spawn("b", burst=1)
        rig.scheduler.tick()
        assert rig.scheduler.current is short

    def test_add_requires_ready_process(self) -> None:
        """Only READY processes join the registry."""
        rig = _Rig()
        p = Process(pid=1, name="x", burst=1)
        p.terminate()
        with pytest.raises(RuntimeError, match="Cannot add"):
            rig.scheduler.add(p)


class TestStopStart:
    """Verify pausing and resuming never double-charges a tick."""

    def test_stop_demotes_and_cancels(self) -> None:
        """Stop returns the running process to READY and disarms the timer."""
        rig = _Rig()
        p = rig.spawn("a", burst=3)
        rig.scheduler.start()
        rig.scheduler.stop()
        assert p.state is ProcessState.READY
        assert rig.scheduler.current is None
        assert not rig.scheduler.tick_pending
        assert not rig.scheduler.running

    def test_cancelled_tick_has_no_effect(self) -> None:
        """A tick after stop() decrements nothing."""
        rig = _Rig()
        p = rig.spawn("a", burst=3)
        rig.scheduler.start()
        rig.scheduler.stop()
        result = rig.scheduler.tick()
        assert result["ran"] is None
        assert p.remaining_burst == 3  # noqa: PLR2004

    def test_stop_start_charges_exactly_one_tick(self) -> None:
        """Pausing mid-cycle then resuming charges one unit per tick."""
        rig = _Rig()
        p = rig.spawn("a", burst=5)
        rig.scheduler.start()
        rig.scheduler.stop()
        rig.scheduler.start()
        rig.scheduler.start()
        rig.scheduler.tick()
        assert p.remaining_burst == 4  # noqa: PLR2004

    def test_stop_is_idempotent(self) -> None:
        """Stopping a stopped scheduler changes nothing."""
        rig = _Rig()
        rig.scheduler.stop()
        rig.scheduler.stop()
        assert not rig.scheduler.running

    def test_schedule_next_when_stopped_does_nothing(self) -> None:
        """A stopped loop halts."""
        rig = _Rig()
        rig.spawn("a", burst=1)
        assert rig.scheduler.schedule_next() is None
        assert rig.scheduler.current is None


class TestSetPolicy:
    """Verify switching policies."""

    def test_set_policy_while_stopped(self) -> None:
        """The new policy is simply stored."""
        rig = _Rig()
        rig.scheduler.set_policy("sjf")
        assert rig.scheduler.policy.name is PolicyName.SJF
        assert not rig.scheduler.running

    def test_set_policy_while_running_reselects(self) -> None:
        """The loop restarts and the new policy picks immediately."""
        rig = _Rig(PolicyName.FCFS)
        low = rig.spawn("low", burst=5, priority=Priority.LOW)
        high = rig.spawn("high", burst=2, priority=Priority.HIGH)
        rig.scheduler.start()
        assert rig.scheduler.current is low
        rig.scheduler.set_policy(PolicyName.PRIORITY)
        assert rig.scheduler.running
        assert rig.scheduler.current is high
        assert low.state is ProcessState.READY
        assert low.remaining_burst == 5  # noqa: PLR2004

    def test_set_policy_while_running_keeps_one_pending_tick(self) -> None:
        """The restart discards the old tick, so only one unit is charged."""
        rig = _Rig()
        p = rig.spawn("a", burst=4)
        rig.scheduler.start()
        rig.scheduler.set_policy("sjf")
        rig.scheduler.tick()
        assert p.remaining_burst == 3  # noqa: PLR2004

    def test_unknown_policy_keeps_current(self) -> None:
        """A rejected name leaves the active policy and loop untouched."""
        rig = _Rig(PolicyName.SJF)
        rig.spawn("a", burst=2)
        rig.scheduler.start()
        with pytest.raises(UnknownPolicyError):
            rig.scheduler.set_policy("lottery")
        assert rig.scheduler.policy.name is PolicyName.SJF
        assert rig.scheduler.tick_pending
        assert rig.logger.filter(min_level=LogLevel.ERROR)


class TestRemove:
    """Verify removal and manual termination."""

    def test_remove_releases_memory(self) -> None:
        """Removal frees the process's blocks."""
        rig = _Rig()
        p = rig.spawn("a", burst=3)
        rig.scheduler.remove(p.pid)
        assert p.state is ProcessState.TERMINATED
        assert rig.memory.free_blocks == rig.memory.block_count

    def test_remove_unknown_is_noop(self) -> None:
        """Removing an absent PID changes nothing."""
        rig = _Rig()
        p = rig.spawn("a", burst=3)
        assert rig.scheduler.remove(99) is None
        assert rig.registry.pids() == [p.pid]
        assert rig.memory.blocks_for(p.pid) == [0, 1]

    def test_remove_twice_is_noop(self) -> None:
        """Removal is idempotent."""
        rig = _Rig()
        p = rig.spawn("a", burst=3)
        assert rig.scheduler.remove(p.pid) is p
        assert rig.scheduler.remove(p.pid) is None

    def test_removing_running_process_dispatches_next(self) -> None:
        """Killing the running process hands the CPU to the next one."""
        rig = _Rig()
        a = rig.spawn("a", burst=3)
        b = rig.spawn("b", burst=3)
        rig.scheduler.start()
        rig.scheduler.remove(a.pid)
        assert rig.scheduler.current is b
        result = rig.scheduler.tick()
        assert result["ran"] == b.pid
        assert a.remaining_burst == 3  # noqa: PLR2004

    def test_removing_last_running_process_idles(self) -> None:
        """With nothing left, the loop goes idle without a pending tick."""
        rig = _Rig()
        a = rig.spawn("a", burst=3)
        rig.scheduler.start()
        rig.scheduler.remove(a.pid)
        assert rig.scheduler.current is None
        assert not rig.scheduler.tick_pending
        assert rig.scheduler.running
