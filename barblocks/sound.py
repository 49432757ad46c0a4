"""Block showing and controlling the volume of a sound device."""

from __future__ import annotations

import subprocess

from barblocks.sound_device import AlsaSoundDevice, DeviceKind
from barblocks.template import (
    BlockError,
    LogicalDirection,
    MouseButton,
    Spacing,
    State,
    Widget,
    render,
    to_logical_direction,
)

_BLOCK = "sound"
_DEFAULT_FORMAT = "{volume}"
_MAX_STEP = 50


def icon_name(device_kind, volume):
    """Name of the icon for a device of ``device_kind`` at ``volume`` percent."""
    prefix = "microphone" if DeviceKind(device_kind) is DeviceKind.SOURCE else "volume"
    if volume == 0:
        suffix = "muted"
    elif volume <= 20:
        suffix = "empty"
    elif volume <= 70:
        suffix = "half"
    else:
        suffix = "full"
    return f"{prefix}_{suffix}"


class Sound:
    """Shows the volume of a device; scrolling changes it, right click mutes."""

    def __init__(
        self,
        block_id,
        device=None,
        device_kind=DeviceKind.SINK,
        step_width=5,
        format=None,
        on_click=None,
        show_volume_when_muted=False,
        mappings=None,
        max_vol=None,
        natural_scrolling=False,
    ):
        self.id = block_id
        self.device = device if device is not None else AlsaSoundDevice()
        self.device_kind = DeviceKind(device_kind)
        self.step_width = min(step_width, _MAX_STEP)
        self.format = format or _DEFAULT_FORMAT
        self.on_click = on_click
        self.show_volume_when_muted = show_volume_when_muted
        self.mappings = dict(mappings) if mappings is not None else None
        self.max_vol = max_vol
        self.natural_scrolling = natural_scrolling
        self.widget = Widget(icon="volume_empty")

    def _names(self):
        output_name = self.device.output_name
        output_description = self.device.output_description or output_name
        if self.mappings is not None and output_name in self.mappings:
            mapped = self.mappings[output_name]
            return mapped, mapped
        return output_name, output_description

    def update(self):
        """Read the device and refresh the widget; there is no periodic update."""
        self.device.get_info()
        volume = self.device.volume
        output_name, output_description = self._names()
        text = render(
            self.format,
            {
                "volume": f"{volume}%",
                "output_name": output_name,
                "output_description": output_description,
            },
        )

        if self.device.muted:
            self.widget.icon = icon_name(self.device_kind, 0)
            if self.show_volume_when_muted:
                self.widget.spacing = Spacing.NORMAL
                self.widget.text = text
            else:
                self.widget.text = ""
            self.widget.state = State.WARNING
        else:
            self.widget.icon = icon_name(self.device_kind, volume)
            self.widget.spacing = Spacing.NORMAL
            self.widget.state = State.IDLE
            self.widget.text = text
        return None

    def click(self, button):
        if button is MouseButton.RIGHT:
            self.device.toggle()
        elif button is MouseButton.LEFT:
            if self.on_click:
                try:
                    subprocess.Popen(
                        ["sh", "-c", self.on_click],
                        stdin=subprocess.DEVNULL,
                        stdout=subprocess.DEVNULL,
                        stderr=subprocess.DEVNULL,
                    )
                except OSError as exc:
                    raise BlockError(_BLOCK, "could not spawn child") from exc
        else:
            direction = to_logical_direction(button, self.natural_scrolling)
            if direction is LogicalDirection.UP:
                self.device.set_volume(self.step_width, self.max_vol)
            elif direction is LogicalDirection.DOWN:
                self.device.set_volume(-self.step_width, self.max_vol)
        self.update()

    def view(self):
        return [self.widget]