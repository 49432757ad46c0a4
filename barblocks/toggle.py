"""Block that switches something on and off with shell commands."""

from __future__ import annotations

import os
import subprocess

from barblocks.template import BlockError, State, Widget


def _shell():
    return os.environ.get("SHELL") or "sh"


class Toggle:
    """Shows an on/off icon; clicking runs the command for the other state."""

    def __init__(
        self,
        block_id,
        command_on="",
        command_off="",
        command_state="",
        icon_on="toggle_on",
        icon_off="toggle_off",
        interval=None,
        text=None,
    ):
        self.id = block_id
        self.command_on = command_on
        self.command_off = command_off
        self.command_state = command_state
        self.icon_on = icon_on
        self.icon_off = icon_off
        self.update_interval = interval
        self.toggled = False
        self.widget = Widget(text=text or "")

    def update(self):
        """Query the state command; return the delay until the next update, or None."""
        try:
            result = subprocess.run(
                [_shell(), "-c", self.command_state], capture_output=True, check=False
            )
            output = result.stdout.decode("utf-8", errors="replace").strip()
        except OSError as exc:
            output = str(exc)

        self.toggled = output != ""
        self.widget.icon = self.icon_on if self.toggled else self.icon_off
        self.widget.state = State.IDLE
        return self.update_interval

    def click(self, button):
        command = self.command_off if self.toggled else self.command_on
        try:
            result = subprocess.run(
                [_shell(), "-c", command], capture_output=True, check=False
            )
        except OSError as exc:
            raise BlockError("toggle", "failed to run toggle command") from exc

        if result.returncode == 0:
            self.widget.state = State.IDLE
            self.toggled = not self.toggled
            self.widget.icon = self.icon_on if self.toggled else self.icon_off
        else:
            self.widget.state = State.CRITICAL

    def view(self):
        return [self.widget]