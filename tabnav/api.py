from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .browser import BrowserMirror, TabSnapshot
from .engine import NavigationEngine
from .errors import AnchorNotFoundError, StoreUnavailableError
from .events import EventRouter
from .press import Press
from .settings import Settings
from .store import SqliteStore, Store

logger = logging.getLogger(__name__)


class TabIn(BaseModel):
    tab_id: int
    window_id: int
    active: bool = False


class SyncIn(BaseModel):
    tabs: list[TabIn] = []
    focused_window_id: int | None = None


class TabActivatedIn(BaseModel):
    tab_id: int
    window_id: int


class WindowFocusIn(BaseModel):
    window_id: int


class TabRemovedIn(BaseModel):
    tab_id: int


def create_app(
    settings: Settings,
    store: Store | None = None,
    browser: BrowserMirror | None = None,
) -> FastAPI:
    store = store if store is not None else SqliteStore(settings.TABNAV_STORE_PATH)
    mirror = browser if browser is not None else BrowserMirror()
    engine = NavigationEngine(store, mirror, capacity=settings.TABNAV_HISTORY_CAPACITY)
    router = EventRouter(
        engine,
        mirror,
        switch_command=settings.TABNAV_SWITCH_COMMAND,
        double_press_window=settings.double_press_window,
    )

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        # Pending single presses must not fire into a stopped loop.
        router.close()

    app = FastAPI(title="tabnav API", version="0.1.0", lifespan=lifespan)

    if settings.TABNAV_API_CORS_ALLOW_ALL:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=False,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.state.engine = engine
    app.state.mirror = mirror
    app.state.router = router

    @app.exception_handler(StoreUnavailableError)
    async def _store_unavailable(request: Request, exc: StoreUnavailableError):
        logger.error("store unavailable: %s", exc)
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    @app.get("/health")
    def health():
        return {"ok": True}

    @app.get("/")
    def root():
        return {
            "service": "tabnav API",
            "ok": True,
            "endpoints": {
                "health": "/health",
                "sync": "/tabs/sync",
                "events": "/events/{tab-activated|window-focus-changed|tab-removed}",
                "command": "/commands/{name}",
                "navigate": "/navigate/{single|double}",
                "actions": "/actions",
                "history": "/history",
                "docs": "/docs",
            },
        }

    @app.post("/tabs/sync")
    async def sync_tabs(payload: SyncIn = Body(...)) -> dict:
        """Replace the browser model with the extension's full tab list."""
        mirror.sync(
            [TabSnapshot(tab_id=t.tab_id, window_id=t.window_id, active=t.active) for t in payload.tabs],
            focused_window_id=payload.focused_window_id,
        )
        return {"ok": True, "tabs": len(mirror.tabs), "focused_window_id": mirror.focused_window}

    @app.post("/events/tab-activated")
    async def tab_activated(payload: TabActivatedIn = Body(...)) -> dict:
        recorded = await router.tab_activated(payload.tab_id, payload.window_id)
        return {"ok": True, "recorded": recorded}

    @app.post("/events/window-focus-changed")
    async def window_focus_changed(payload: WindowFocusIn = Body(...)) -> dict:
        recorded = await router.window_focus_changed(payload.window_id)
        return {"ok": True, "recorded": recorded}

    @app.post("/events/tab-removed")
    async def tab_removed(payload: TabRemovedIn = Body(...)) -> dict:
        removed = await router.tab_removed(payload.tab_id)
        return {"ok": True, "removed": removed}

    @app.post("/commands/{name}")
    async def run_command(name: str) -> dict:
        outcome = await router.command(name)
        if not outcome.recognised:
            raise HTTPException(status_code=404, detail=f"Unknown command: {name}")
        return outcome.to_dict()

    @app.post("/navigate/{press}")
    async def navigate(press: Press) -> dict:
        """Navigate with an already classified press (skips the double press window)."""
        try:
            target = await engine.navigate(press)
        except AnchorNotFoundError as e:
            raise HTTPException(status_code=409, detail=str(e))
        return {"ok": True, "press": press.value, "target": target.to_dict() if target else None}

    @app.get("/actions")
    async def actions() -> dict:
        """Hand pending focus/activate requests to the extension (and forget them)."""
        return {"actions": [a.to_dict() for a in mirror.drain_actions()]}

    @app.get("/history")
    async def get_history() -> dict:
        tabs, anchor = await engine.history()
        return {
            "tabs": [t.to_dict() for t in tabs],
            "current_tab_id": anchor,
            "capacity": engine.capacity,
        }

    @app.delete("/history")
    async def clear_history() -> dict:
        await engine.clear()
        return {"ok": True}

    return app
