"""Single / double press classification for the switch command."""
from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)

DOUBLE_PRESS_WINDOW = 0.3


class Press(str, Enum):
    SINGLE = "single"
    DOUBLE = "double"


class PressPhase(str, Enum):
    IDLE = "idle"
    AWAITING_SECOND_PRESS = "awaiting_second_press"


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


def _loop_call_later(delay: float, callback: Callable[[], Any]) -> TimerHandle:
    return asyncio.get_running_loop().call_later(delay, callback)


class PressDisambiguator:
    """Turns raw triggers into SINGLE / DOUBLE presses.

    A second trigger within `window` seconds of the first is a DOUBLE and is
    emitted right away. Otherwise the trigger is held for `window` seconds and
    emitted as a SINGLE unless another trigger arrives first. Each new trigger
    cancels the held one, so at most one timer is outstanding.

    The first press's timestamp is kept after its SINGLE fires; a later trigger
    compares against it and, being past the window, starts a new pair.
    """

    def __init__(
        self,
        on_press: Callable[[Press], Any],
        window: float = DOUBLE_PRESS_WINDOW,
        clock: Callable[[], float] = time.monotonic,
        call_later: Callable[[float, Callable[[], Any]], TimerHandle] | None = None,
    ):
        """Initialize the disambiguator.

        Args:
            on_press: Called with the classified press
            window: Double press window in seconds
            clock: Monotonic time source
            call_later: Timer factory; defaults to the running asyncio loop
        """
        self.on_press = on_press
        self.window = window
        self.clock = clock
        self.call_later = call_later or _loop_call_later
        self.last_press_at: float | None = None
        self._pending: TimerHandle | None = None

    @property
    def phase(self) -> PressPhase:
        if self._pending is not None:
            return PressPhase.AWAITING_SECOND_PRESS
        return PressPhase.IDLE

    def trigger(self) -> Press | None:
        """Feed one raw trigger.

        Returns:
            Press.DOUBLE if this trigger completed a double press, else None
            (a SINGLE may follow once the window elapses)
        """
        now = self.clock()
        self.cancel()

        if self.last_press_at is not None and now - self.last_press_at < self.window:
            gap = now - self.last_press_at
            self.last_press_at = None
            logger.debug("double press (%.0f ms apart)", gap * 1000)
            self.on_press(Press.DOUBLE)
            return Press.DOUBLE

        self.last_press_at = now
        self._pending = self.call_later(self.window, self._fire_single)
        return None

    def cancel(self) -> None:
        """Drop the held SINGLE, if any."""
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _fire_single(self) -> None:
        self._pending = None
        self.on_press(Press.SINGLE)
