from __future__ import annotations


class TabnavError(Exception):
    """Base class for tabnav errors."""


class NavigationError(TabnavError):
    pass


class AnchorNotFoundError(NavigationError):
    """The current tab is not in the history; navigation cannot pick a cursor."""

    def __init__(self, anchor: int | None):
        super().__init__(f"current tab {anchor!r} is not in the history")
        self.anchor = anchor


class StoreUnavailableError(TabnavError):
    """The key-value store could not be read or written."""
