"""Shared block primitives and a minimal example block."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Mapping

_PLACEHOLDER = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")


class State(Enum):
    """Visual state of a widget."""

    IDLE = "idle"
    INFO = "info"
    GOOD = "good"
    WARNING = "warning"
    CRITICAL = "critical"


class Spacing(Enum):
    """How much padding a widget gets around its text."""

    NORMAL = "normal"
    INLINE = "inline"
    HIDDEN = "hidden"


class MouseButton(Enum):
    """Mouse buttons reported by the bar."""

    LEFT = "left"
    MIDDLE = "middle"
    RIGHT = "right"
    WHEEL_UP = "wheel_up"
    WHEEL_DOWN = "wheel_down"
    FORWARD = "forward"
    BACK = "back"
    UNKNOWN = "unknown"


class LogicalDirection(Enum):
    """Scroll direction after applying the scrolling preference."""

    UP = "up"
    DOWN = "down"


def to_logical_direction(button, natural=False):
    """Map a wheel button to a logical direction, or None for other buttons."""
    if button is MouseButton.WHEEL_UP:
        return LogicalDirection.DOWN if natural else LogicalDirection.UP
    if button is MouseButton.WHEEL_DOWN:
        return LogicalDirection.UP if natural else LogicalDirection.DOWN
    return None


class BlockError(Exception):
    """An error raised by a block, tagged with the block's name."""

    def __init__(self, block: str, message: str):
        super().__init__(f"{block}: {message}")
        self.block = block
        self.message = message


@dataclass
class Widget:
    """A piece of text shown on the bar."""

    text: str = ""
    icon: str | None = None
    state: State = State.IDLE
    spacing: Spacing = Spacing.NORMAL


def placeholders(fmt):
    """Return the placeholder names used in a format string, in order."""
    return [match.group(1) for match in _PLACEHOLDER.finditer(fmt)]


def render(fmt, values: Mapping[str, object]):
    """Substitute ``{name}`` placeholders in ``fmt`` with ``values``."""

    def substitute(match: re.Match) -> str:
        name = match.group(1)
        if name not in values:
            raise BlockError("formatting", f"unknown placeholder '{name}'")
        return str(values[name])

    return _PLACEHOLDER.sub(substitute, fmt)


class Template:
    """A block that shows fixed text and refreshes on an interval."""

    def __init__(self, block_id, interval=5.0):
        self.id = block_id
        self.update_interval = interval
        self.widget = Widget(text="Template")

    def update(self):
        """Return the delay in seconds until the next update."""
        return self.update_interval

    def view(self):
        return [self.widget]

    def click(self, button):
        return None