"""Block showing NVIDIA GPU statistics streamed from nvidia-smi."""

from __future__ import annotations

import subprocess
import threading
import uuid
from enum import Enum

from barblocks.template import (
    BlockError,
    LogicalDirection,
    MouseButton,
    Spacing,
    State,
    Widget,
    to_logical_direction,
)

_BLOCK = "nvidia_gpu"


class _NameMode(Enum):
    DEFAULT_NAME = "default_name"
    LABEL = "label"


class _MemoryMode(Enum):
    USED = "used"
    TOTAL = "total"


def build_query_params(
    show_utilization,
    show_memory,
    show_temperature,
    show_fan_speed,
    show_clocks,
    show_power_draw,
):
    """Build the ``--query-gpu`` field list for the enabled readings."""
    params = "name,memory.total,"
    for enabled, field in (
        (show_utilization, "utilization.gpu,"),
        (show_memory, "memory.used,"),
        (show_temperature, "temperature.gpu,"),
        (show_fan_speed, "fan.speed,"),
        (show_clocks, "clocks.current.graphics,"),
        (show_power_draw, "power.draw,"),
    ):
        if enabled:
            params += field
    return params


def _parse_unsigned(text):
    return int(text) if text.isdecimal() else 0


class NvidiaGpu:
    """Shows name, utilization, memory, temperature, fan, clocks and power."""

    executable = "nvidia-smi"
    settings_executable = "nvidia-settings"

    def __init__(
        self,
        block_id,
        interval=3.0,
        label=None,
        gpu_id=0,
        show_utilization=True,
        show_memory=True,
        show_temperature=True,
        show_fan_speed=False,
        show_clocks=False,
        show_power_draw=False,
        idle=50,
        good=70,
        info=75,
        warning=80,
    ):
        self.id = block_id
        self.id_memory = uuid.uuid4().int
        self.id_fans = uuid.uuid4().int
        self.update_interval = interval
        self.gpu_enabled = False
        self.gpu_id = gpu_id
        self.params = build_query_params(
            show_utilization,
            show_memory,
            show_temperature,
            show_fan_speed,
            show_clocks,
            show_power_draw,
        )

        self.name_widget = Widget(icon="gpu", spacing=Spacing.INLINE)
        self.name_mode = _NameMode.DEFAULT_NAME if label is None else _NameMode.LABEL
        self.label = label or ""

        def optional(enabled):
            return Widget(spacing=Spacing.INLINE) if enabled else None

        self.utilization_widget = optional(show_utilization)
        self.memory_widget = optional(show_memory)
        self.memory_mode = _MemoryMode.USED
        self.temperature_widget = optional(show_temperature)
        self.fan_widget = optional(show_fan_speed)
        self.fan_speed = 0
        self.fan_speed_controlled = False
        self.natural_scrolling = False
        self.clocks_widget = optional(show_clocks)
        self.power_draw_widget = optional(show_power_draw)

        self.maximum_idle = idle
        self.maximum_good = good
        self.maximum_info = info
        self.maximum_warning = warning

        self._process: subprocess.Popen | None = None
        self._lock = threading.Lock()
        self._line_ready = threading.Event()
        self._latest = ""

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _argv(self):
        return [
            self.executable,
            "-l",
            str(int(self.update_interval)),
            "-i",
            str(self.gpu_id),
            f"--query-gpu={self.params}",
            "--format=csv,noheader,nounits",
        ]

    def _start(self):
        try:
            process = subprocess.Popen(
                self._argv(),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                text=True,
                errors="replace",
            )
        except OSError as exc:
            raise BlockError("gpu", "Failed to execute nvidia-smi.") from exc
        self._process = process
        threading.Thread(
            target=self._read_lines, args=(process.stdout,), name="nvidia_gpu", daemon=True
        ).start()

    def _read_lines(self, stream):
        for line in stream:
            with self._lock:
                self._latest = line
            self._line_ready.set()

    def _check_running(self):
        code = self._process.poll()
        if code is not None:
            raise BlockError(_BLOCK, f"nvidia-smi exited with error code {code}")

    def temperature_state(self, temperature):
        if temperature <= self.maximum_idle:
            return State.IDLE
        if temperature <= self.maximum_good:
            return State.GOOD
        if temperature <= self.maximum_info:
            return State.INFO
        if temperature <= self.maximum_warning:
            return State.WARNING
        return State.CRITICAL

    def apply_line(self, line):
        """Update the widgets from one line of nvidia-smi CSV output."""
        fields = line.strip().split(", ")
        if len(fields) < 2:
            raise BlockError(_BLOCK, "missing field in nvidia-smi output")
        gpu_name, memory_total = fields[0], fields[1]
        rest = iter(fields[2:])

        def next_field():
            try:
                return next(rest)
            except StopIteration:
                raise BlockError(_BLOCK, "missing field in nvidia-smi output") from None

        if self.name_mode is _NameMode.DEFAULT_NAME:
            self.name_widget.text = gpu_name
            self.name_widget.spacing = Spacing.INLINE
        else:
            self.name_widget.spacing = Spacing.HIDDEN if not self.label else Spacing.INLINE
            self.name_widget.text = self.label

        if self.utilization_widget is not None:
            self.utilization_widget.text = f"{next_field():<2}%"
        if self.memory_widget is not None:
            used = next_field()
            shown = used if self.memory_mode is _MemoryMode.USED else memory_total
            self.memory_widget.text = f"{shown}MB"
        if self.temperature_widget is not None:
            temperature = _parse_unsigned(next_field())
            self.temperature_widget.state = self.temperature_state(temperature)
            self.temperature_widget.text = f"{temperature:02}°C"
        if self.fan_widget is not None:
            self.fan_speed = _parse_unsigned(next_field())
            self.fan_widget.text = f"{self.fan_speed:02}%"
        if self.clocks_widget is not None:
            self.clocks_widget.text = f"{next_field()}MHz"
        if self.power_draw_widget is not None:
            self.power_draw_widget.text = f"{next_field()} W"

    def update(self):
        """Show the latest reading; return the delay until the next update."""
        if self._process is None:
            self._start()
        self._check_running()
        self.gpu_enabled = True
        while not self._line_ready.wait(0.1):
            self._check_running()
        with self._lock:
            line = self._latest
        self.apply_line(line)
        return self.update_interval

    def view(self):
        widgets = [self.name_widget]
        if self.gpu_enabled:
            widgets.extend(
                widget
                for widget in (
                    self.utilization_widget,
                    self.memory_widget,
                    self.temperature_widget,
                    self.fan_widget,
                    self.clocks_widget,
                    self.power_draw_widget,
                )
                if widget is not None
            )
        return widgets

    def _settings(self, *assignments):
        argv = [self.settings_executable]
        for assignment in assignments:
            argv.extend(["-a", assignment])
        try:
            subprocess.run(argv, capture_output=True, check=False)
        except OSError as exc:
            raise BlockError("gpu", "Failed to execute nvidia-settings.") from exc

    def click(self, instance, button):
        if instance is None:
            return
        if instance == self.id and button is MouseButton.LEFT:
            self.name_mode = (
                _NameMode.LABEL
                if self.name_mode is _NameMode.DEFAULT_NAME
                else _NameMode.DEFAULT_NAME
            )
            self.update()

        if instance == self.id_memory and button is MouseButton.LEFT:
            self.memory_mode = (
                _MemoryMode.TOTAL if self.memory_mode is _MemoryMode.USED else _MemoryMode.USED
            )
            self.update()

        if instance == self.id_fans:
            self._click_fan(button)

    def _click_fan(self, button):
        controlled_changed = False
        new_fan_speed = self.fan_speed
        if button is MouseButton.LEFT:
            self.fan_speed_controlled = not self.fan_speed_controlled
            controlled_changed = True
        else:
            direction = to_logical_direction(button, self.natural_scrolling)
            if direction is LogicalDirection.UP:
                if self.fan_speed < 100 and self.fan_speed_controlled:
                    new_fan_speed += 1
            elif direction is LogicalDirection.DOWN:
                if self.fan_speed > 0 and self.fan_speed_controlled:
                    new_fan_speed -= 1

        if self.fan_widget is None:
            return
        if controlled_changed:
            if self.fan_speed_controlled:
                self._settings(
                    f"[gpu:{self.gpu_id}]/GPUFanControlState=1",
                    f"[fan:{self.gpu_id}]/GPUTargetFanSpeed={self.fan_speed}",
                )
                self.fan_widget.text = f"{self.fan_speed:02}%"
                self.fan_widget.state = State.WARNING
            else:
                self._settings(f"[gpu:{self.gpu_id}]/GPUFanControlState=0")
                self.fan_widget.state = State.IDLE
        elif self.fan_speed_controlled:
            self._settings(f"[fan:{self.gpu_id}]/GPUTargetFanSpeed={new_fan_speed}")
            self.fan_speed = new_fan_speed
            self.fan_widget.text = f"{new_fan_speed:02}%"

    def close(self):
        """Stop the nvidia-smi process."""
        if self._process is None:
            return
        try:
            self._process.kill()
        except OSError:
            pass
        self._process.wait()
        self._process = None