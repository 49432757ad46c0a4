"""Block showing the current date and time."""

from __future__ import annotations

import locale as _locale
import threading
from datetime import datetime, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from barblocks.template import BlockError, Widget, render

_BLOCK = "time"
_DEFAULT_FORMAT = "%a %d/%m %R"
_LOCALE_LOCK = threading.Lock()


def _zone(timezone):
    if timezone is None or isinstance(timezone, tzinfo):
        return timezone
    try:
        return ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise BlockError(_BLOCK, f"invalid timezone '{timezone}'") from exc


class Time:
    """Shows the time formatted with strftime codes."""

    def __init__(self, block_id, format=None, interval=5.0, timezone=None, locale=None):
        self.id = block_id
        self.update_interval = interval
        self.format = render(format or _DEFAULT_FORMAT, {})
        self.timezone = _zone(timezone)
        self.locale = locale
        self.widget = Widget(text="", icon="time")

    def _now(self):
        if self.timezone is not None:
            return datetime.now(self.timezone)
        return datetime.now().astimezone()

    def formatted(self, fmt):
        """Format the current time with ``fmt``."""
        now = self._now()
        if self.locale is None:
            return now.strftime(fmt)
        with _LOCALE_LOCK:
            previous = _locale.setlocale(_locale.LC_TIME)
            for candidate in (self.locale, f"{self.locale}.UTF-8"):
                try:
                    _locale.setlocale(_locale.LC_TIME, candidate)
                    break
                except _locale.Error:
                    continue
            else:
                raise BlockError(_BLOCK, "invalid locale")
            try:
                return now.strftime(fmt)
            finally:
                _locale.setlocale(_locale.LC_TIME, previous)

    def update(self):
        """Refresh the time; return the delay until the next update."""
        self.widget.text = self.formatted(self.format)
        return self.update_interval

    def view(self):
        return [self.widget]