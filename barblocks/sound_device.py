"""ALSA sound device controlled through amixer."""

from __future__ import annotations

import os
import subprocess
import threading
import time
from enum import Enum

from barblocks.template import BlockError

_BLOCK = "sound"
# Characters stripped from amixer tokens such as "[100%]".
_FILTER = "[]%"
_MONITOR_PAUSE = 0.25


class DeviceKind(Enum):
    """Whether a device plays sound or records it."""

    SINK = "sink"
    SOURCE = "source"


def parse_amixer_output(output):
    """Return ``(volume, muted)`` from the last line of ``amixer get`` output."""
    lines = output.strip().splitlines()
    if not lines:
        raise BlockError(_BLOCK, "could not get sound info")
    fields = [
        word.strip(_FILTER)
        for word in lines[-1].split()
        if word.startswith("[") and "dB" not in word
    ]
    if not fields:
        raise BlockError(_BLOCK, "could not get volume")
    if not fields[0].isdecimal():
        raise BlockError(_BLOCK, "could not parse volume to u32")
    volume = int(fields[0])
    muted = len(fields) > 1 and fields[1] == "off"
    return volume, muted


class AlsaSoundDevice:
    """A mixer control of an ALSA device."""

    executable = "amixer"

    def __init__(self, name="Master", device="default", natural_mapping=False):
        self.name = name
        self.device = device
        self.natural_mapping = natural_mapping
        self.volume = 0
        self.muted = False
        self.get_info()

    @property
    def output_name(self):
        return self.name

    @property
    def output_description(self):
        return None

    def _argv(self, *args):
        argv = [self.executable]
        if self.natural_mapping:
            argv.append("-M")
        argv.extend(["-D", self.device, *args])
        return argv

    def _amixer(self, error, *args):
        try:
            return subprocess.run(self._argv(*args), capture_output=True, check=False)
        except OSError as exc:
            raise BlockError(_BLOCK, error) from exc

    def get_info(self):
        """Read the current volume and mute state."""
        result = self._amixer("could not run amixer to get sound info", "get", self.name)
        output = result.stdout.decode("utf-8", errors="replace")
        self.volume, self.muted = parse_amixer_output(output)

    def set_volume(self, step, max_vol=None):
        """Change the volume by ``step`` percent, never below 0 nor above ``max_vol``."""
        new_volume = max(0, self.volume + step)
        if max_vol is not None:
            new_volume = min(new_volume, max_vol)
        self._amixer("failed to set volume", "set", self.name, f"{new_volume}%")
        self.volume = new_volume

    def toggle(self):
        """Toggle muting."""
        self._amixer("failed to toggle mute", "set", self.name, "toggle")
        self.muted = not self.muted

    def monitor(self, callback):
        """Call ``callback`` whenever ALSA reports activity; return the watcher thread."""
        try:
            process = subprocess.Popen(
                ["stdbuf", "-oL", "alsactl", "monitor"],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
            )
        except OSError as exc:
            raise BlockError(_BLOCK, "Failed to start alsactl monitor") from exc

        def watch():
            descriptor = process.stdout.fileno()
            while True:
                try:
                    os.read(descriptor, 1024)
                except OSError:
                    pass
                else:
                    callback()
                # Slow enough to skip event spam, fast enough for button mashing.
                time.sleep(_MONITOR_PAUSE)

        thread = threading.Thread(target=watch, name="sound_alsa", daemon=True)
        thread.start()
        return thread