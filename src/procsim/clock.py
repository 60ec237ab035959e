"""Simulated tick timer.

The scheduler's run loop is driven by a one-shot timer: each dispatch
arms the timer, and the next tick fires it.  Here the timer lives in
*simulated* time.  Nothing waits on a wall clock; ``advance()`` is the
tick, and whoever owns the timer (tests, the real-time driver) decides
when to call it.

Because the timer is one-shot, a tick can only fire the callback that
was armed for it.  ``cancel()`` disarms it, and a cancelled callback
never runs.
"""

from collections.abc import Callable


class TickTimer:
    """A one-shot timer counted in simulated ticks."""

    def __init__(self) -> None:
        """Create a disarmed timer at tick 0."""
        self._callback: Callable[[], None] | None = None
        self._total_ticks = 0
        self._fires = 0

    @property
    def armed(self) -> bool:
        """Return True if a callback is waiting for the next tick."""
        return self._callback is not None

    @property
    def total_ticks(self) -> int:
        """Return the number of ticks advanced since creation."""
        return self._total_ticks

    @property
    def fires(self) -> int:
        """Return how many armed callbacks have fired."""
        return self._fires

    def arm(self, callback: Callable[[], None]) -> None:
        """Schedule *callback* to run on the next tick.

        Raises:
            RuntimeError: If the timer is already armed.

        """
        if self._callback is not None:
            msg = "Timer is already armed"
            raise RuntimeError(msg)
        self._callback = callback

    def cancel(self) -> bool:
        """Disarm the timer.

        Returns:
            True if a pending callback was discarded.

        """
        cancelled = self._callback is not None
        self._callback = None
        return cancelled

    def advance(self) -> bool:
        """Advance simulated time by one tick, firing any armed callback.

        The timer is disarmed *before* the callback runs, so the
        callback may re-arm it for the following tick.

        Returns:
            True if a callback fired on this tick.

        """
        self._total_ticks += 1
        callback, self._callback = self._callback, None
        if callback is None:
            return False
        self._fires += 1
        callback()
        return True

    def reset(self) -> None:
        """Disarm and zero all counters."""
        self._callback = None
        self._total_ticks = 0
        self._fires = 0
