"""Block counting taskwarrior tasks matching a set of filters."""

from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass

from barblocks.template import BlockError, MouseButton, State, Widget, render

_BLOCK = "taskwarrior"


@dataclass
class Filter:
    """A named taskwarrior filter expression."""

    name: str
    filter: str


def legacy_filter(name, tags):
    """Build a filter from a list of required tags."""
    joined = " ".join(f"+{tag}" for tag in tags)
    return Filter(name, f"-COMPLETED -DELETED {joined}")


def has_taskwarrior():
    """Whether the ``task`` command is available."""
    return shutil.which("task") is not None


def get_number_of_tasks(filter_text):
    """Count the tasks matching ``filter_text``."""
    try:
        result = subprocess.run(
            ["sh", "-c", f"task rc.gc=off {filter_text} count"],
            capture_output=True,
            check=False,
        )
    except OSError as exc:
        raise BlockError(
            _BLOCK, "failed to run taskwarrior for getting the number of tasks"
        ) from exc
    try:
        output = result.stdout.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise BlockError(
            _BLOCK, "failed to get the number of tasks from taskwarrior"
        ) from exc
    try:
        count = int(output.strip())
    except ValueError as exc:
        raise BlockError(_BLOCK, "could not parse the result of taskwarrior") from exc
    if count < 0:
        raise BlockError(_BLOCK, "could not parse the result of taskwarrior")
    return count


class Taskwarrior:
    """Shows the number of tasks for the active filter."""

    def __init__(
        self,
        block_id,
        interval=600.0,
        warning_threshold=10,
        critical_threshold=20,
        filter_tags=None,
        filters=None,
        format=None,
        format_singular=None,
        format_everything_done=None,
    ):
        self.id = block_id
        self.update_interval = interval
        self.warning_threshold = warning_threshold
        self.critical_threshold = critical_threshold
        if filter_tags:
            self.filters = [
                legacy_filter("filtered", filter_tags),
                legacy_filter("all", []),
            ]
        elif filters is None:
            self.filters = [Filter("pending", "-COMPLETED -DELETED")]
        else:
            self.filters = list(filters)
        self.filter_index = 0
        self.format = format or "{count}"
        self.format_singular = format_singular or "{count}"
        self.format_everything_done = format_everything_done or "{count}"
        self.widget = Widget(text="-", icon="tasks")

    def state_for(self, count):
        if count >= self.critical_threshold:
            return State.CRITICAL
        if count >= self.warning_threshold:
            return State.WARNING
        return State.IDLE

    def update(self):
        """Refresh the count; return the delay until the next update."""
        if not has_taskwarrior():
            self.widget.text = "?"
            return self.update_interval

        try:
            active = self.filters[self.filter_index]
        except IndexError:
            raise BlockError(
                _BLOCK, f"Filter at index {self.filter_index} does not exist"
            ) from None
        count = get_number_of_tasks(active.filter)
        values = {"count": count, "filter_name": active.name}
        if count == 0:
            fmt = self.format_everything_done
        elif count == 1:
            fmt = self.format_singular
        else:
            fmt = self.format
        self.widget.text = render(fmt, values)
        self.widget.state = self.state_for(count)
        return self.update_interval

    def click(self, button):
        if button is MouseButton.LEFT:
            self.update()
        elif button is MouseButton.RIGHT:
            if not self.filters:
                raise BlockError(_BLOCK, "no filters configured")
            self.filter_index = (self.filter_index + 1) % len(self.filters)
            self.update()

    def view(self):
        return [self.widget]