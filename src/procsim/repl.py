"""Interactive REPL (Read-Eval-Print Loop) for the simulator.

The REPL boots a simulation, starts a real-time clock driver so the
scheduler advances one tick per second, and then loops:

    1. **Read**: display a prompt and read user input.
    2. **Eval**: pass the command to ``shell.execute()``.
    3. **Print**: display the result.
    4. **Loop**: repeat until the shell returns the exit sentinel.

The helpers (``format_banner``, ``build_prompt``) are pure and
testable.  ``run()`` is the I/O entrypoint.
"""

import readline

from procsim import __version__
from procsim.kernel import Simulation, SimulationState
from procsim.realtime import ClockDriver
from procsim.shell import Shell

_BANNER_WIDTH = 38
_CLEAR_SCREEN = "\033[2J\033[H"


def format_banner(boot_log: list[str]) -> str:
    """Format the boot log into a displayable banner string."""
    border = "=" * _BANNER_WIDTH
    header = (
        f"\n  {border}\n            procsim v{__version__}\n"
        f"   Process scheduling & memory simulator\n  {border}\n\n"
    )
    body = "\n".join(f"  {msg}" for msg in boot_log)
    footer = "\nType 'help' for commands, 'start' to run the scheduler, 'exit' to quit.\n"
    return header + body + footer


def build_prompt(simulation: Simulation) -> str:
    """Build the prompt, showing the policy and simulated time."""
    if simulation.state is not SimulationState.RUNNING:
        return "procsim $ "
    info = simulation.sysinfo()
    return f"procsim [{info['policy']} t={info['tick']}] $ "


def run() -> None:
    """Boot the simulator and run the interactive REPL.

    This is the ``procsim`` console entry point.
    """
    simulation = Simulation()
    simulation.boot()
    shell = Shell(simulation=simulation)
    driver = ClockDriver(simulation)
    driver.start()

    readline.parse_and_bind("tab: complete")
    print(format_banner(simulation.dmesg()))  # noqa: T201

    try:
        while simulation.state is SimulationState.RUNNING:
            try:
                command = input(build_prompt(simulation))
            except EOFError:
                print()  # noqa: T201
                break

            result = shell.execute(command)
            if result == Shell.EXIT_SENTINEL:
                break
            if result == Shell.CLEAR_SENTINEL:
                print(_CLEAR_SCREEN, end="")  # noqa: T201
            elif result:
                print(result)  # noqa: T201

    except KeyboardInterrupt:
        print("\nInterrupted.")  # noqa: T201

    finally:
        driver.stop()
        if simulation.state is SimulationState.RUNNING:
            simulation.shutdown()
        print("Simulation halted.")  # noqa: T201
