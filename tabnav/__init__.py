"""tabnav: recently-used tab history with alt-tab style switching."""

__version__ = "0.1.0"
