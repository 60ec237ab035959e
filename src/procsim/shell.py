"""The shell — terminal-style command interpreter for the simulation.

The shell reads a command string, splits it into a command name and
arguments, dispatches to a handler, and returns the output as a string.

Design choices:
    - **Returns strings, not prints.**  The shell is fully testable;
      the caller (REPL or web API) decides how to display output.
    - **Command dispatch via a dict.**  Adding a command means writing
      one ``_cmd_*`` method and one dict entry.
    - **Never raises for user mistakes.**  Bad input becomes a
      ``Usage:`` or ``Error:`` line, so a typo cannot kill the session.
"""

from collections.abc import Callable
from typing import TypeAlias

from procsim.kernel import Simulation, SimulationState
from procsim.logging import LogLevel
from procsim.memory.allocator import AllocationFailedError, render_blocks
from procsim.process.scheduler import UnknownPolicyError

# Type alias for a command handler: takes a list of args, returns output.
_Handler: TypeAlias = Callable[[list[str]], str]

_MAX_TICKS_PER_COMMAND = 1000

HELP_TEXT = """Available commands:
  ps                                 - List all processes
  kill <pid>                         - Terminate a process
  new [name] [priority] [mb] [burst] - Create a process (missing values are random)
  start                              - Start the scheduler
  stop                               - Pause the scheduler
  scheduler [fcfs|sjf|priority]      - Show or switch the scheduling policy
  tick [n]                           - Advance simulated time by n ticks (default 1)
  mem                                - Show the memory block map
  top                                - Show the system summary
  log [LEVEL]                        - Show the event log
  clear                              - Clear terminal
  help                               - Show this help message
  exit                               - Leave the simulator"""


class Shell:
    """Command interpreter bound to a running simulation."""

    EXIT_SENTINEL = "__EXIT__"
    CLEAR_SENTINEL = "__CLEAR__"

    def __init__(self, *, simulation: Simulation) -> None:
        """Create a shell attached to a running simulation.

        Raises:
            RuntimeError: If the simulation is not running.

        """
        if simulation.state is not SimulationState.RUNNING:
            msg = f"Shell requires a running simulation (state: {simulation.state}, not running)"
            raise RuntimeError(msg)
        self._simulation = simulation
        self._commands: dict[str, _Handler] = {
            "help": self._cmd_help,
            "ps": self._cmd_ps,
            "kill": self._cmd_kill,
            "new": self._cmd_new,
            "start": self._cmd_start,
            "stop": self._cmd_stop,
            "scheduler": self._cmd_scheduler,
            "tick": self._cmd_tick,
            "mem": self._cmd_mem,
            "top": self._cmd_top,
            "log": self._cmd_log,
            "clear": self._cmd_clear,
            "exit": self._cmd_exit,
        }

    @property
    def command_names(self) -> list[str]:
        """Return the sorted names of all commands."""
        return sorted(self._commands)

    def execute(self, command: str) -> str:
        """Parse and run one command line.

        Command names are case-insensitive.

        Args:
            command: The raw input (e.g. ``"kill 3"``).

        Returns:
            The command output, an error message, or a sentinel.

        """
        parts = command.split()
        if not parts:
            return ""
        name, args = parts[0].lower(), parts[1:]
        handler = self._commands.get(name)
        if handler is None:
            return f"Command not found: {name}. Type 'help' for available commands."
        return handler(args)

    # -- Command handlers ------------------------------------------------

    def _cmd_help(self, _args: list[str]) -> str:
        """Describe every command."""
        return HELP_TEXT

    def _cmd_ps(self, _args: list[str]) -> str:
        """List processes in arrival order."""
        lines = [
            f"{'PID':<6} {'NAME':<16} {'STATE':<11} {'PRIO':<7} {'CPU':>4} {'MEMORY':>7} BURST"
        ]
        lines.extend(
            f"{p.pid:<6} {p.name:<16} {p.state!s:<11} {p.priority!s:<7} "
            f"{p.cpu_usage:>3}% {p.memory_mb:>4} MB {p.remaining_burst:>5}"
            for p in self._simulation.processes()
        )
        return "\n".join(lines)

    def _cmd_kill(self, args: list[str]) -> str:
        """Terminate a process by PID."""
        if not args:
            return "Usage: kill <pid>"
        try:
            pid = int(args[0])
        except ValueError:
            return f"Error: invalid PID '{args[0]}'"
        if self._simulation.terminate_process(pid):
            return f"Process {pid} terminated"
        return f"No process with PID {pid}"

    def _cmd_new(self, args: list[str]) -> str:
        """Create a process; omitted fields are generated."""
        name = args[0] if args else None
        priority = args[1] if len(args) > 1 else None
        try:
            memory_mb = int(args[2]) if len(args) > 2 else None  # noqa: PLR2004
            burst = int(args[3]) if len(args) > 3 else None  # noqa: PLR2004
        except ValueError:
            return "Usage: new [name] [low|medium|high] [memory_mb] [burst]"
        try:
            process = self._simulation.create_process(
                name=name, priority=priority, memory_mb=memory_mb, burst=burst
            )
        except AllocationFailedError:
            return "Error: not enough memory to create new process"
        except ValueError as e:
            return f"Error: {e}"
        return (
            f"Created process {process.pid} ({process.name}, {process.priority}, "
            f"{process.memory_mb} MB, burst {process.remaining_burst})"
        )

    def _cmd_start(self, _args: list[str]) -> str:
        """Start the scheduler."""
        self._simulation.start()
        return "Simulation running"

    def _cmd_stop(self, _args: list[str]) -> str:
        """Pause the scheduler."""
        self._simulation.stop()
        return "Simulation paused"

    def _cmd_scheduler(self, args: list[str]) -> str:
        """Show or switch the scheduling policy."""
        if not args:
            state = "running" if self._simulation.is_scheduling else "stopped"
            return f"Current policy: {self._simulation.policy} ({state})"
        try:
            name = self._simulation.set_policy(args[0])
        except UnknownPolicyError as e:
            return f"Error: {e}"
        return f"Scheduling policy set to {name}"

    def _cmd_tick(self, args: list[str]) -> str:
        """Advance simulated time and report what ran."""
        try:
            count = int(args[0]) if args else 1
        except ValueError:
            return f"Error: invalid tick count '{args[0]}'"
        if not 1 <= count <= _MAX_TICKS_PER_COMMAND:
            return f"Error: tick count must be within 1..{_MAX_TICKS_PER_COMMAND}"
        lines: list[str] = []
        for result in self._simulation.run(count):
            ran = result["ran"]
            line = f"t={result['tick']}: " + (f"pid {ran} ran" if ran is not None else "idle")
            if result["terminated"] is not None:
                line += f", pid {result['terminated']} completed"
            lines.append(line)
        return "\n".join(lines)

    def _cmd_mem(self, _args: list[str]) -> str:
        """Render the block map and usage totals."""
        snapshot = self._simulation.memory()
        return "\n".join(
            [
                render_blocks(snapshot.blocks),
                f"Used: {snapshot.used_mb} MB  Free: {snapshot.free_mb} MB  "
                f"Memory: {snapshot.usage_percent}%",
            ]
        )

    def _cmd_top(self, _args: list[str]) -> str:
        """Show the system summary."""
        info = self._simulation.sysinfo()
        current = info["current_pid"] if info["current_pid"] is not None else "-"
        state = "running" if info["scheduling"] else "paused"
        lines = [
            "=== procsim System Monitor ===",
            f"Tick:        {info['tick']}",
            f"Scheduler:   {info['policy']} ({state})",
            f"Running:     {current}",
            f"CPU:         {info['cpu_usage']}%",
            f"Memory:      {info['memory_used_mb']}/{info['memory_total_mb']} MB "
            f"({info['memory_usage_percent']}%)",
            f"Processes:   {info['process_count']} ({info['ready_count']} ready)",
            f"Completed:   {info['total_completed']}",
        ]
        return "\n".join(lines)

    def _cmd_log(self, args: list[str]) -> str:
        """Print event log entries, optionally filtered by minimum level."""
        logger = self._simulation.logger
        if logger is None:
            return "Log not available."
        min_level: LogLevel | None = None
        if args:
            try:
                min_level = LogLevel[args[0].upper()]
            except KeyError:
                return f"Error: unknown log level '{args[0]}'"
        entries = logger.filter(min_level=min_level)
        return "\n".join(str(e) for e in entries) if entries else "No log entries."

    def _cmd_clear(self, _args: list[str]) -> str:
        """Ask the front end to clear its output."""
        return self.CLEAR_SENTINEL

    def _cmd_exit(self, _args: list[str]) -> str:
        """Ask the front end to end the session."""
        return self.EXIT_SENTINEL
