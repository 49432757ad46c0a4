"""Block showing temperatures read from lm_sensors or sysfs hwmon."""

from __future__ import annotations

import json
import subprocess
import sys
from enum import Enum
from pathlib import Path

from barblocks.template import BlockError, MouseButton, Spacing, State, Widget, render

_BLOCK = "temperature"
_DEFAULT_FORMAT = "{average} avg, {max} max"
_LOWEST = -101.0
_HIGHEST = 151.0


class TemperatureScale(Enum):
    """Scale used for display and thresholds."""

    CELSIUS = "celsius"
    FAHRENHEIT = "fahrenheit"


class TemperatureDriver(Enum):
    """Where temperatures are read from."""

    SYSFS = "sysfs"
    SENSORS = "sensors"


_DEFAULT_THRESHOLDS = {
    TemperatureScale.CELSIUS: (20.0, 45.0, 60.0, 80.0),
    TemperatureScale.FAHRENHEIT: (68.0, 113.0, 140.0, 176.0),
}


def _in_range(value):
    if _LOWEST < value < _HIGHEST:
        return True
    print(f"Temperature ({value}) outside of range ([-100, 150])", file=sys.stderr)
    return False


def parse_sensors_text(output):
    """Extract input temperatures from ``sensors -u`` output.

    Only the integer part of each reading is used and zero readings are
    ignored, as older lm_sensors versions report unused inputs as zero.
    """
    temperatures = []
    for line in output.splitlines():
        if not line.startswith("  temp"):
            continue
        rest = line[len("  temp"):]
        parts = [
            piece
            for chunk in rest.split("_")
            for word in chunk.split(" ")
            for piece in word.split(".")
        ]
        if len(parts) < 3 or not parts[1].startswith("input"):
            continue
        try:
            value = float(parts[2])
        except ValueError:
            raise BlockError(
                _BLOCK, "failed to parse temperature as an integer"
            ) from None
        if value == 0.0:
            continue
        if _in_range(value):
            temperatures.append(value)
    return temperatures


def _numeric_readings(values):
    if not isinstance(values, dict):
        return None
    for value in values.values():
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
    return {name: float(value) for name, value in values.items()}


def parse_sensors_json(output, inputs=None):
    """Extract input temperatures from ``sensors -j`` output.

    ``inputs``, when given, limits the result to the named inputs.
    """
    try:
        parsed = json.loads(output)
    except json.JSONDecodeError:
        raise BlockError(_BLOCK, "sensors output is invalid") from None
    if not isinstance(parsed, dict) or not all(
        isinstance(chip, dict) for chip in parsed.values()
    ):
        raise BlockError(_BLOCK, "sensors output is invalid")

    temperatures = []
    for chip_inputs in parsed.values():
        for input_name, input_values in chip_inputs.items():
            if inputs is not None and input_name not in inputs:
                continue
            readings = _numeric_readings(input_values)
            if readings is None:
                # Entries such as "Adapter" carry no readings.
                continue
            for value_name, value in readings.items():
                if not (value_name.startswith("temp") and value_name.endswith("input")):
                    continue
                if _in_range(value):
                    temperatures.append(value)
    return temperatures


def _read_text(path):
    try:
        return Path(path).read_text()
    except OSError as exc:
        raise BlockError(_BLOCK, str(exc)) from exc


def read_sysfs(root, chip=None, inputs=None):
    """Read labelled temperature inputs from the hwmon directories under ``root``."""
    root = Path(root)
    try:
        hwmons = sorted(root.iterdir())
    except OSError as exc:
        raise BlockError(_BLOCK, str(exc)) from exc

    temperatures = []
    for hwmon in hwmons:
        if chip is not None:
            hwmon_name = _read_text(hwmon / "name").strip()
            if not (hwmon_name in chip or chip in hwmon_name):
                continue
        try:
            entries = sorted(hwmon.iterdir())
        except OSError as exc:
            raise BlockError(_BLOCK, str(exc)) from exc
        for entry in entries:
            name = entry.name
            if not (name.startswith("temp") and name.endswith("label")):
                continue
            if inputs is not None and _read_text(entry).strip() not in inputs:
                continue
            raw = _read_text(hwmon / name.replace("label", "input")).strip()
            try:
                value = float(raw) / 1000.0
            except ValueError:
                raise BlockError(
                    _BLOCK, "failed to parse temperature as an integer"
                ) from None
            if _in_range(value):
                temperatures.append(value)
    return temperatures


def _sensors_needs_fallback():
    try:
        result = subprocess.run(["sensors", "--help"], capture_output=True, check=False)
    except OSError as exc:
        raise BlockError(
            _BLOCK,
            "Failed to check lm_sensors json output support. Is it installed?",
        ) from exc
    try:
        help_text = result.stdout.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise BlockError(
            _BLOCK, "Failed to check lm_sensors json output support."
        ) from exc
    return " -j " not in help_text


def _degrees(value):
    return f"{value:.0f}°"


class Temperature:
    """Shows the average, minimum and maximum of the system temperatures."""

    hwmon_root = Path("/sys/class/hwmon")

    def __init__(
        self,
        block_id,
        interval=5.0,
        collapsed=True,
        scale=TemperatureScale.CELSIUS,
        good=None,
        idle=None,
        info=None,
        warning=None,
        format=None,
        driver=TemperatureDriver.SENSORS,
        chip=None,
        inputs=None,
        fallback_required=None,
    ):
        self.id = block_id
        self.update_interval = interval
        self.collapsed = collapsed
        self.scale = TemperatureScale(scale)
        default_good, default_idle, default_info, default_warning = (
            _DEFAULT_THRESHOLDS[self.scale]
        )
        self.maximum_good = default_good if good is None else good
        self.maximum_idle = default_idle if idle is None else idle
        self.maximum_info = default_info if info is None else info
        self.maximum_warning = default_warning if warning is None else warning
        self.format = format or _DEFAULT_FORMAT
        self.driver = TemperatureDriver(driver)
        self.chip = chip
        self.inputs = None if inputs is None else list(inputs)
        if fallback_required is None:
            fallback_required = (
                self.driver is TemperatureDriver.SENSORS and _sensors_needs_fallback()
            )
        self.fallback_required = fallback_required
        self.output = ""
        self.widget = Widget(
            icon="thermometer",
            spacing=Spacing.HIDDEN if collapsed else Spacing.NORMAL,
        )

    def state_for(self, maximum):
        if maximum <= self.maximum_good:
            return State.GOOD
        if maximum <= self.maximum_idle:
            return State.IDLE
        if maximum <= self.maximum_info:
            return State.INFO
        if maximum <= self.maximum_warning:
            return State.WARNING
        return State.CRITICAL

    def _read_sensors(self):
        args = ["sensors", "-u" if self.fallback_required else "-j"]
        if self.chip:
            args.append(self.chip)
        try:
            result = subprocess.run(args, capture_output=True, check=False)
            output = result.stdout.decode("utf-8", errors="replace").strip()
        except OSError as exc:
            output = str(exc)
        if self.fallback_required:
            return parse_sensors_text(output)
        return parse_sensors_json(output, self.inputs)

    def _read(self):
        if self.driver is TemperatureDriver.SENSORS:
            return self._read_sensors()
        return read_sysfs(self.hwmon_root, self.chip, self.inputs)

    def update(self):
        """Read the temperatures; return the delay until the next update."""
        temperatures = self._read()
        if self.scale is TemperatureScale.FAHRENHEIT:
            temperatures = [c * 9.0 / 5.0 + 32.0 for c in temperatures]

        if temperatures:
            highest = max(temperatures)
            lowest = min(temperatures)
            average = sum(temperatures) / len(temperatures)
            values = {
                "average": _degrees(average),
                "min": _degrees(lowest),
                "max": _degrees(highest),
            }
            self.output = render(self.format, values)
            if not self.collapsed:
                self.widget.text = self.output
            self.widget.state = self.state_for(highest)

        return self.update_interval

    def click(self, button):
        if button is not MouseButton.LEFT:
            return
        self.collapsed = not self.collapsed
        if self.collapsed:
            self.widget.text = ""
            self.widget.spacing = Spacing.HIDDEN
        else:
            self.widget.text = self.output
            self.widget.spacing = Spacing.NORMAL

    def view(self):
        return [self.widget]