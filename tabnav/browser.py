"""Browser-side collaborators: liveness lookup, focus queries and the actuator."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Protocol

from .recency import TabRef

logger = logging.getLogger(__name__)

# Reported by the browser when focus leaves all of its windows.
WINDOW_ID_NONE = -1


class Browser(Protocol):
    async def lookup_tab(self, tab_id: int) -> TabRef | None:
        """Return the tab with its current window, or None if it no longer exists."""
        ...

    async def any_window_focused(self) -> bool: ...

    async def active_tab(self, window_id: int) -> int | None: ...

    async def focus_window(self, window_id: int) -> None: ...

    async def activate_tab(self, tab_id: int) -> None: ...


@dataclass(frozen=True)
class Action:
    """A side effect the extension has to perform."""

    kind: str
    target: int

    def to_dict(self) -> dict:
        return {"kind": self.kind, "target": self.target}


@dataclass(frozen=True)
class TabSnapshot:
    tab_id: int
    window_id: int
    active: bool = False


class BrowserMirror:
    """In-process model of the browser, kept current by extension events.

    The extension reports what happens (activation, focus, removal) and the
    mirror answers the engine's questions from that. Actuator calls are queued
    as Actions; the extension drains and performs them.
    """

    def __init__(self):
        self.tabs: dict[int, int] = {}
        self.active_by_window: dict[int, int] = {}
        self.focused_window: int | None = None
        self._actions: list[Action] = []

    # -- events ------------------------------------------------------------

    def sync(self, tabs: Iterable[TabSnapshot], focused_window_id: int | None = None) -> None:
        """Replace the whole model with a fresh snapshot (extension startup)."""
        self.tabs = {}
        self.active_by_window = {}
        for t in tabs:
            self.tabs[t.tab_id] = t.window_id
            if t.active:
                self.active_by_window[t.window_id] = t.tab_id
        self.set_focused_window(WINDOW_ID_NONE if focused_window_id is None else focused_window_id)
        logger.info("browser mirror synced (%d tabs, focused window=%s)", len(self.tabs), self.focused_window)

    def tab_activated(self, tab_id: int, window_id: int) -> None:
        old_window = self.tabs.get(tab_id)
        if old_window is not None and old_window != window_id:
            # Moved: it is no longer the active tab of the window it left.
            if self.active_by_window.get(old_window) == tab_id:
                del self.active_by_window[old_window]
        self.tabs[tab_id] = window_id
        self.active_by_window[window_id] = tab_id

    def set_focused_window(self, window_id: int) -> None:
        self.focused_window = None if window_id == WINDOW_ID_NONE else window_id

    def tab_removed(self, tab_id: int) -> None:
        window_id = self.tabs.pop(tab_id, None)
        if window_id is not None and self.active_by_window.get(window_id) == tab_id:
            del self.active_by_window[window_id]

    # -- queries -----------------------------------------------------------

    async def lookup_tab(self, tab_id: int) -> TabRef | None:
        window_id = self.tabs.get(tab_id)
        if window_id is None:
            return None
        return TabRef(tab_id=tab_id, window_id=window_id)

    async def any_window_focused(self) -> bool:
        return self.focused_window is not None

    async def active_tab(self, window_id: int) -> int | None:
        return self.active_by_window.get(window_id)

    # -- actuator ----------------------------------------------------------

    async def focus_window(self, window_id: int) -> None:
        self._actions.append(Action("focus_window", window_id))

    async def activate_tab(self, tab_id: int) -> None:
        self._actions.append(Action("activate_tab", tab_id))

    def pending_actions(self) -> list[Action]:
        return list(self._actions)

    def drain_actions(self) -> list[Action]:
        out, self._actions = self._actions, []
        return out
