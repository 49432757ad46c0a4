# barblocks

Building blocks for a text status bar. Each block keeps one or more widgets.
A widget holds text, an icon name, spacing and a state. A block refreshes
itself when `update()` is called. That call returns the delay in seconds until
the next refresh, or `None` when the block has no periodic refresh. A block
reacts to mouse clicks through `click()` and returns its widgets from `view()`.

## Blocks

- `barblocks.template`: the shared pieces and a minimal block.
  - The shared pieces are `State`, `Spacing`, `MouseButton`,
    `LogicalDirection`, `Widget` and `BlockError`.
  - `to_logical_direction(button, natural)` maps wheel buttons to a
    direction.
  - `placeholders(fmt)` and `render(fmt, values)` handle `{name}` format
    strings. `render` raises `BlockError` for an unknown placeholder.
  - `Template` shows the fixed text "Template".
- `barblocks.time.Time`: the current time, formatted with strftime codes
  (default `%a %d/%m %R`). It takes an optional timezone name or `tzinfo`, and
  an optional locale.
- `barblocks.toggle.Toggle`: runs `command_on` or `command_off` through
  `$SHELL -c` (or `sh`) when clicked. `command_state` decides the current
  state: empty output means off.
- `barblocks.taskwarrior.Taskwarrior`: counts tasks with `task ... count` for
  a list of `Filter`s. A right click moves to the next filter. The count
  reaches the warning state at `warning_threshold` and the critical state at
  `critical_threshold`.
- `barblocks.pacman.Pacman`: counts pending updates.
  - The `{pacman}` and `{count}` placeholders count pacman updates, using a
    private database copy and `fakeroot`.
  - `{aur}` counts updates listed by a given `aur_command`.
  - `{both}` is the sum of the two.
  - `watched()` works out from the formats which sources are needed.
- `barblocks.temperature.Temperature`: shows the average, minimum and maximum
  temperature.
  - It reads from `sensors -j`, from `sensors -u` on older versions, or from
    sysfs hwmon.
  - It uses Celsius or Fahrenheit thresholds.
  - A left click collapses or expands the text.
- `barblocks.speedtest.SpeedTest`: runs `speedtest-cli --simple` in a
  background thread and shows ping, download and upload speed.
- `barblocks.nvidia_gpu.NvidiaGpu`: streams figures from `nvidia-smi`. The
  figures are name, utilization, memory, temperature, fan speed, clocks and
  power draw. Clicking the fan widget controls the fan through
  `nvidia-settings`.
- `barblocks.sound.Sound` with `barblocks.sound_device.AlsaSoundDevice`:
  shows volume and mute state through `amixer`. Scrolling changes the volume
  by `step_width`, which is at most 50. A right click toggles mute. A left
  click runs `on_click` when one is set.

## Example

```python
from barblocks.template import Template, render

block = Template(block_id=1)
interval = block.update()       # seconds until the next refresh
for widget in block.view():
    print(widget.text, widget.state)

print(render("{count} updates", {"count": 3}))   # "3 updates"
```

Errors raised by a block are `barblocks.template.BlockError`. Each one
carries the block name (`block`) and the message (`message`).

## What this package does not do

There is no bar program here. Nothing schedules the blocks, reads a
configuration file or writes the bar's output protocol. Icon names such as
`volume_half` are kept as names and not mapped to glyphs. Sound control is
done through ALSA's `amixer` only.

## Tests

```
pip install -e .[test]
pytest
```