import pytest

from barblocks.nvidia_gpu import NvidiaGpu, build_query_params
from barblocks.template import BlockError, MouseButton, Spacing, State


@pytest.fixture
def fake_smi(tmp_path):
    script = tmp_path / "fake-smi"
    script.write_text("#!/bin/sh\necho 'Test GPU, 8192, 12, 2048, 55'\nexec sleep 30\n")
    script.chmod(0o755)
    return str(script)


def test_query_params_defaults():
    assert (
        build_query_params(True, True, True, False, False, False)
        == "name,memory.total,utilization.gpu,memory.used,temperature.gpu,"
    )


def test_query_params_all_enabled():
    assert build_query_params(True, True, True, True, True, True) == (
        "name,memory.total,utilization.gpu,memory.used,temperature.gpu,"
        "fan.speed,clocks.current.graphics,power.draw,"
    )


def test_query_params_minimal():
    assert build_query_params(False, False, False, False, False, False) == "name,memory.total,"


@pytest.mark.parametrize(
    "temperature, expected",
    [
        (50, State.IDLE),
        (51, State.GOOD),
        (70, State.GOOD),
        (75, State.INFO),
        (80, State.WARNING),
        (81, State.CRITICAL),
    ],
)
def test_temperature_state(temperature, expected):
    assert NvidiaGpu(0).temperature_state(temperature) is expected


def test_apply_line_default_fields():
    gpu = NvidiaGpu(0)
    gpu.apply_line("GeForce GTX 1080, 8192, 12, 2048, 55\n")
    assert gpu.name_widget.text == "GeForce GTX 1080"
    assert gpu.utilization_widget.text == "12%"
    assert gpu.memory_widget.text == "2048MB"
    assert gpu.temperature_widget.text == "55°C"
    assert gpu.temperature_widget.state is State.GOOD


def test_apply_line_unparsable_temperature():
    gpu = NvidiaGpu(0, show_utilization=False, show_memory=False)
    gpu.apply_line("Card, 4096, N/A")
    assert gpu.temperature_widget.text == "00°C"
    assert gpu.temperature_widget.state is State.IDLE


def test_apply_line_clocks_and_power():
    gpu = NvidiaGpu(
        0,
        show_utilization=False,
        show_memory=False,
        show_temperature=False,
        show_clocks=True,
        show_power_draw=True,
    )
    gpu.apply_line("Card, 4096, 1500, 120.5")
    assert gpu.clocks_widget.text == "1500MHz"
    assert gpu.power_draw_widget.text == "120.5 W"


def test_apply_line_fan_speed():
    gpu = NvidiaGpu(
        0,
        show_utilization=False,
        show_memory=False,
        show_temperature=False,
        show_fan_speed=True,
    )
    gpu.apply_line("Card, 4096, 42")
    assert gpu.fan_speed == 42
    assert gpu.fan_widget.text == "42%"


def test_empty_label_hides_name():
    gpu = NvidiaGpu(0, label="")
    gpu.apply_line("Card, 4096, 1, 2, 3")
    assert gpu.name_widget.text == ""
    assert gpu.name_widget.spacing is Spacing.HIDDEN


def test_label_replaces_name():
    gpu = NvidiaGpu(0, label="Main")
    gpu.apply_line("Card, 4096, 1, 2, 3")
    assert gpu.name_widget.text == "Main"
    assert gpu.name_widget.spacing is Spacing.INLINE


def test_apply_line_missing_field():
    gpu = NvidiaGpu(0)
    with pytest.raises(BlockError):
        gpu.apply_line("Card, 4096, 12")


def test_view_before_enabled_shows_only_name():
    gpu = NvidiaGpu(0)
    assert gpu.view() == [gpu.name_widget]


def test_update_and_clicks(fake_smi):
    gpu = NvidiaGpu(7, label="Main")
    gpu.executable = fake_smi
    try:
        assert gpu.update() == 3.0
        assert gpu.name_widget.text == "Main"
        assert len(gpu.view()) == 4
        gpu.click(7, MouseButton.LEFT)
        assert gpu.name_widget.text == "Test GPU"
        assert gpu.memory_widget.text == "2048MB"
        gpu.click(gpu.id_memory, MouseButton.LEFT)
        assert gpu.memory_widget.text == "8192MB"
    finally:
        gpu.close()


def test_process_exit_is_an_error(tmp_path):
    script = tmp_path / "failing-smi"
    script.write_text("#!/bin/sh\nexit 3\n")
    script.chmod(0o755)
    gpu = NvidiaGpu(0)
    gpu.executable = str(script)
    try:
        with pytest.raises(BlockError, match="exited with error code"):
            gpu.update()
    finally:
        gpu.close()


def test_missing_executable(tmp_path):
    gpu = NvidiaGpu(0)
    gpu.executable = str(tmp_path / "does-not-exist")
    with pytest.raises(BlockError, match="nvidia-smi"):
        gpu.update()


def test_fan_scroll_without_control_keeps_speed():
    gpu = NvidiaGpu(0, show_fan_speed=True)
    gpu.fan_speed = 40
    gpu.click(gpu.id_fans, MouseButton.WHEEL_UP)
    assert gpu.fan_speed == 40
    assert gpu.fan_speed_controlled is False


def test_fan_control_and_scroll():
    gpu = NvidiaGpu(0, show_fan_speed=True)
    gpu.settings_executable = "true"
    gpu.fan_speed = 40
    gpu.click(gpu.id_fans, MouseButton.LEFT)
    assert gpu.fan_speed_controlled is True
    assert gpu.fan_widget.state is State.WARNING
    gpu.click(gpu.id_fans, MouseButton.WHEEL_UP)
    assert gpu.fan_speed == 41
    assert gpu.fan_widget.text == "41%"
    gpu.click(gpu.id_fans, MouseButton.WHEEL_DOWN)
    assert gpu.fan_speed == 40
    gpu.click(gpu.id_fans, MouseButton.LEFT)
    assert gpu.fan_speed_controlled is False
    assert gpu.fan_widget.state is State.IDLE


def test_click_without_instance_changes_nothing():
    gpu = NvidiaGpu(0, label="Main")
    gpu.click(None, MouseButton.LEFT)
    gpu.apply_line("Card, 4096, 1, 2, 3")
    assert gpu.name_widget.text == "Main"