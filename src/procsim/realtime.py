"""Real-time clock driver.

The simulation core never sleeps: time only moves when someone calls
``Simulation.tick()``.  Interactive front ends want the simulation to
advance on its own, one tick per second, the way a hardware timer
interrupts a CPU.  ``ClockDriver`` provides that: a daemon thread that
calls ``tick()`` every ``interval`` seconds until stopped.

Ticks are taken under the simulation's lock, so commands issued from
other threads (the REPL, web requests) never interleave with a tick.
"""

import threading

from procsim.kernel import Simulation, SimulationState


class ClockDriver:
    """Drive a simulation's clock from a background thread."""

    def __init__(self, simulation: Simulation, *, interval: float | None = None) -> None:
        """Create a stopped driver.

        Args:
            simulation: The simulation to tick.
            interval: Seconds between ticks (defaults to the config's tick length).

        Raises:
            ValueError: If interval is not positive.

        """
        interval = simulation.config.tick_seconds if interval is None else interval
        if interval <= 0:
            msg = f"Interval must be positive, got {interval}"
            raise ValueError(msg)
        self._simulation = simulation
        self._interval = interval
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._ticks = 0

    @property
    def interval(self) -> float:
        """Return the seconds between ticks."""
        return self._interval

    @property
    def running(self) -> bool:
        """Return True while the driver thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    @property
    def ticks(self) -> int:
        """Return how many ticks this driver has delivered."""
        return self._ticks

    def start(self) -> None:
        """Start the driver thread.  Starting a running driver does nothing."""
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="procsim-clock", daemon=True)
        self._thread.start()

    def stop(self, *, timeout: float | None = None) -> None:
        """Stop the driver thread and wait for it to exit."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _run(self) -> None:
        """Tick once per interval until stopped or the simulation shuts down."""
        while not self._stop_event.wait(self._interval):
            with self._simulation.lock:
                if self._simulation.state is not SimulationState.RUNNING:
                    return
                self._simulation.tick()
                self._ticks += 1
