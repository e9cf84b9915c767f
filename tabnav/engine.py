"""Tab history engine: records activations and picks the tab to switch to."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from .browser import Browser
from .errors import AnchorNotFoundError
from .press import Press
from .recency import RecencyQueue, TabRef
from .store import CURRENT_TAB_KEY, RECENT_TABS_KEY, Store

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 20


@dataclass
class NavState:
    """History + current tab as read from the store at the start of a handler."""

    queue: RecencyQueue
    anchor: int | None = None


class NavigationEngine:
    """Owns the tab history and the current-tab anchor.

    Two writers keep the history in order: `record_activation` (driven by the
    browser's activation events) and `navigate` (driven by the switch command).
    The anchor doubles as an idempotency token: once `navigate` has set it, the
    activation event the switch causes is recognised and ignored.

    State lives in the store only. Every handler reads it at its start and
    writes it back before returning; handlers are serialized by a lock, and the
    actuator is called after the lock is released.
    """

    def __init__(self, store: Store, browser: Browser, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.store = store
        self.browser = browser
        self.capacity = capacity
        self._lock = asyncio.Lock()

    async def _load(self) -> NavState:
        raw = await self.store.get(RECENT_TABS_KEY) or []
        anchor = await self.store.get(CURRENT_TAB_KEY)
        return NavState(
            queue=RecencyQueue(TabRef.from_dict(r) for r in raw),
            anchor=None if anchor is None else int(anchor),
        )

    async def _save(self, state: NavState) -> None:
        # History and anchor are one unit: queue[0] must match the stored anchor.
        await self.store.set_many({
            RECENT_TABS_KEY: [t.to_dict() for t in state.queue],
            CURRENT_TAB_KEY: state.anchor,
        })

    def _promote(self, state: NavState, tab: TabRef) -> None:
        # Outgoing tab becomes second most recent, keeping its stored window.
        if state.anchor is not None:
            idx = state.queue.index_of(state.anchor)
            if idx is not None:
                state.queue.add_first(state.queue.at(idx))
        state.queue.add_first(tab)
        while state.queue.size() > self.capacity:
            state.queue.remove_last()
        state.anchor = tab.tab_id

    @staticmethod
    def _purge(state: NavState, tab_id: int) -> bool:
        changed = state.queue.remove(tab_id)
        if state.anchor == tab_id:
            state.anchor = None
            changed = True
        return changed

    async def record_activation(self, tab: TabRef) -> bool:
        """Record that `tab` became active.

        Returns:
            False if `tab` already is the current tab (nothing changed)
        """
        async with self._lock:
            state = await self._load()
            if state.anchor == tab.tab_id:
                return False
            self._promote(state, tab)
            await self._save(state)
        logger.debug("tab %s active in window %s", tab.tab_id, tab.window_id)
        return True

    async def navigate(self, press: Press | str) -> TabRef | None:
        """Switch tabs for a classified press.

        A single press on a tab that is not at the front jumps back to the most
        recent tab; a double press, or a single press while already at the
        front, steps one tab further into history. If no browser window has
        focus, the current tab is brought back instead.

        Returns:
            The tab that was activated, or None if the history is empty

        Raises:
            AnchorNotFoundError: The current tab is not in a non-empty history
        """
        press = Press(press)
        async with self._lock:
            target = await self._select_target(press)
        if target is None:
            return None

        await self.browser.focus_window(target.window_id)
        await self.browser.activate_tab(target.tab_id)
        logger.info("%s press: switched to tab %s (window %s)", press.value, target.tab_id, target.window_id)
        return target

    async def _select_target(self, press: Press) -> TabRef | None:
        state = await self._load()

        # Each pass either returns or removes one entry, so this ends.
        while state.queue.size() > 0:
            i = None if state.anchor is None else state.queue.index_of(state.anchor)
            if i is None:
                logger.error(
                    "current tab %r is not in the history (%d tabs); not switching",
                    state.anchor,
                    state.queue.size(),
                )
                raise AnchorNotFoundError(state.anchor)

            if not await self.browser.any_window_focused():
                target = i
            elif press is Press.DOUBLE or i == 0:
                target = i + 1
            else:
                target = 0
            target = min(target, state.queue.size() - 1)

            candidate = state.queue.at(target)
            live = await self.browser.lookup_tab(candidate.tab_id)
            if live is None:
                logger.info("tab %s no longer exists; dropping it from history", candidate.tab_id)
                self._purge(state, candidate.tab_id)
                await self._save(state)
                continue

            if press is Press.SINGLE and target == 0 and target != i:
                # Same reordering the activation event would cause; that event
                # is suppressed once the anchor points at the target.
                self._promote(state, candidate)
            state.anchor = candidate.tab_id
            await self._save(state)
            return live

        logger.debug("history is empty; nothing to switch to")
        return None

    async def forget(self, tab_id: int) -> bool:
        """Drop a closed tab from history, clearing the anchor if it pointed there."""
        async with self._lock:
            state = await self._load()
            if not self._purge(state, tab_id):
                return False
            await self._save(state)
        logger.debug("tab %s closed; removed from history", tab_id)
        return True

    async def history(self) -> tuple[list[TabRef], int | None]:
        async with self._lock:
            state = await self._load()
        return state.queue.to_list(), state.anchor

    async def clear(self) -> None:
        async with self._lock:
            await self._save(NavState(queue=RecencyQueue()))
        logger.info("tab history cleared")
