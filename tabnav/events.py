"""Event router: browser events and commands in, engine calls out."""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

from .browser import WINDOW_ID_NONE, BrowserMirror
from .engine import NavigationEngine
from .errors import NavigationError
from .press import DOUBLE_PRESS_WINDOW, Press, PressDisambiguator, TimerHandle
from .recency import TabRef

logger = logging.getLogger(__name__)

DEFAULT_SWITCH_COMMAND = "switch-to-last-tab"


@dataclass(frozen=True)
class CommandOutcome:
    command: str
    recognised: bool
    press: Press | None = None

    def to_dict(self) -> dict:
        return {
            "command": self.command,
            "recognised": self.recognised,
            "press": self.press.value if self.press else None,
        }


class EventRouter:
    """Dispatches extension events and commands.

    - tab activation / window focus feed `record_activation`
    - tab removal feeds `forget`
    - the switch command goes through the press disambiguator; classified
      presses run `navigate` as tasks on the running loop
    - any other command name is logged and ignored
    """

    def __init__(
        self,
        engine: NavigationEngine,
        mirror: BrowserMirror,
        *,
        switch_command: str = DEFAULT_SWITCH_COMMAND,
        double_press_window: float = DOUBLE_PRESS_WINDOW,
        clock: Callable[[], float] = time.monotonic,
        call_later: Callable[[float, Callable[[], Any]], TimerHandle] | None = None,
    ):
        """Initialize router with dependencies.

        Args:
            engine: Navigation engine holding the history
            mirror: Browser model updated from events
            switch_command: Command name mapped to the switch trigger
            double_press_window: Seconds within which two triggers are a double press
            clock: Time source for the disambiguator
            call_later: Timer factory for the disambiguator (tests inject a fake)
        """
        self.engine = engine
        self.mirror = mirror
        self.presser = PressDisambiguator(
            self._on_press,
            window=double_press_window,
            clock=clock,
            call_later=call_later,
        )
        self.commands: dict[str, Callable[[], Press | None]] = {
            self._normalize_command(switch_command): self.presser.trigger,
        }
        self._tasks: set[asyncio.Task] = set()

    @staticmethod
    def _normalize_command(name: str | None) -> str:
        return str(name or "").strip().lower()

    async def tab_activated(self, tab_id: int, window_id: int) -> bool:
        self.mirror.tab_activated(tab_id, window_id)
        return await self.engine.record_activation(TabRef(tab_id=tab_id, window_id=window_id))

    async def window_focus_changed(self, window_id: int) -> bool:
        """Record the active tab of a newly focused window.

        Focus leaving the browser (WINDOW_ID_NONE) only updates the mirror.
        """
        self.mirror.set_focused_window(window_id)
        if window_id == WINDOW_ID_NONE:
            return False
        tab_id = await self.mirror.active_tab(window_id)
        if tab_id is None:
            logger.debug("window %s focused but its active tab is unknown", window_id)
            return False
        return await self.engine.record_activation(TabRef(tab_id=tab_id, window_id=window_id))

    async def tab_removed(self, tab_id: int) -> bool:
        self.mirror.tab_removed(tab_id)
        return await self.engine.forget(tab_id)

    async def command(self, name: str) -> CommandOutcome:
        """Handle a raw command invocation.

        A double press is navigated before this returns; a single press is
        navigated later, when the double press window has passed.
        """
        key = self._normalize_command(name)
        handler = self.commands.get(key)
        if handler is None:
            logger.warning("Unknown command %r; ignoring", name)
            return CommandOutcome(command=str(name), recognised=False)

        press = handler()
        await self.drain()
        return CommandOutcome(command=key, recognised=True, press=press)

    async def drain(self) -> None:
        """Wait for navigations that have already been started."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def close(self) -> None:
        self.presser.cancel()

    def _on_press(self, press: Press) -> None:
        task = asyncio.get_running_loop().create_task(self._navigate(press))
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("navigation failed: %s", exc, exc_info=exc)

    async def _navigate(self, press: Press) -> TabRef | None:
        try:
            return await self.engine.navigate(press)
        except NavigationError as e:
            # No caller to hand this to; the engine already logged the details.
            logger.warning("%s press ignored: %s", press.value, e)
            return None
