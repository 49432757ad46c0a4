"""Block running speedtest-cli in the background."""

from __future__ import annotations

import queue
import subprocess
import threading

from barblocks.template import BlockError, MouseButton, Widget, render

_BLOCK = "speedtest"
_DEFAULT_FORMAT = "{ping}{speed_down}{speed_up}"
_PREFIXES = ("", "K", "M", "G", "T")


def get_values():
    """Run ``speedtest-cli --simple`` and return its output."""
    try:
        result = subprocess.run(
            ["speedtest-cli", "--simple"], capture_output=True, check=False
        )
    except OSError as exc:
        raise BlockError(_BLOCK, "could not get speedtest-cli output") from exc
    try:
        return result.stdout.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise BlockError(_BLOCK, "could not parse speedtest-cli output") from exc


def parse_values(output):
    """Return the number from the second column of every output line."""
    values = []
    for line in output.splitlines():
        words = line.split()
        if len(words) < 2:
            raise BlockError(_BLOCK, "missing data")
        try:
            values.append(float(words[1]))
        except ValueError:
            raise BlockError(_BLOCK, "Unable to parse data") from None
    return values


def _format_seconds(seconds):
    if seconds < 1.0:
        return f"{seconds * 1000:.0f}ms"
    return f"{seconds:.2f}s"


def _format_bits(bits):
    value = bits
    prefix = _PREFIXES[0]
    for prefix in _PREFIXES:
        if abs(value) < 1000 or prefix == _PREFIXES[-1]:
            break
        value /= 1000
    return f"{value:.1f}{prefix}b/s"


class SpeedTest:
    """Shows ping, download and upload speed, measured in a worker thread."""

    def __init__(self, block_id, format=None, interval=1800.0):
        self.id = block_id
        self.format = format or _DEFAULT_FORMAT
        self.interval = interval
        self.ping_icon = "ping"
        self.down_icon = "net_down"
        self.up_icon = "net_up"
        self.widget = Widget(text="...")
        self.measured = threading.Event()
        self._lock = threading.Lock()
        self._updated = False
        self._values: list[float] = []
        self._requests: queue.Queue[None] = queue.Queue()
        threading.Thread(target=self._work, name="speedtest", daemon=True).start()

    def _work(self):
        while True:
            self._requests.get()
            try:
                values = parse_values(get_values())
            except BlockError:
                continue
            if len(values) != 3:
                continue
            with self._lock:
                self._values = values
                self._updated = True
            self.measured.set()

    def update(self):
        """Show new results if there are any, otherwise request a measurement.

        Returns the delay until the next update, or None after showing results.
        """
        with self._lock:
            if not self._updated:
                self._requests.put(None)
                return self.interval
            self._updated = False
            self.measured.clear()
            if len(self._values) == 3:
                ping_ms, down_mbit, up_mbit = self._values
                values = {
                    "ping": f"{self.ping_icon} {_format_seconds(ping_ms / 1000.0)} ",
                    "speed_down": f"{self.down_icon} {_format_bits(down_mbit * 1e6)} ",
                    "speed_up": f"{self.up_icon} {_format_bits(up_mbit * 1e6)} ",
                }
                self.widget.text = render(self.format, values).rstrip()
            return None

    def click(self, button):
        if button is MouseButton.LEFT:
            self._requests.put(None)

    def view(self):
        return [self.widget]