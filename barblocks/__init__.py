"""Status bar blocks that keep widgets for a text status bar."""

__version__ = "0.1.0"