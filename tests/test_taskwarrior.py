import shutil
import subprocess

import pytest

from barblocks.taskwarrior import (
    Filter,
    Taskwarrior,
    get_number_of_tasks,
    has_taskwarrior,
    legacy_filter,
)
from barblocks.template import BlockError, MouseButton, State


class FakeTask:
    """Stands in for the shell: records commands and answers with a count."""

    def __init__(self, output):
        self.output = output
        self.commands = []

    def __call__(self, args, **kwargs):
        self.commands.append(args)
        return subprocess.CompletedProcess(args, 0, stdout=self.output, stderr=b"")


@pytest.fixture
def with_task(monkeypatch):
    monkeypatch.setattr(shutil, "which", lambda name: "/usr/bin/task")

    def install(output):
        fake = FakeTask(output)
        monkeypatch.setattr(subprocess, "run", fake)
        return fake

    return install


def test_legacy_filter_with_tags():
    flt = legacy_filter("filtered", ["work", "urgent"])
    assert flt == Filter("filtered", "-COMPLETED -DELETED +work +urgent")


def test_legacy_filter_without_tags_keeps_base():
    flt = legacy_filter("all", [])
    assert flt.name == "all"
    assert flt.filter.strip() == "-COMPLETED -DELETED"


def test_default_filter():
    block = Taskwarrior(1)
    assert block.filters == [Filter("pending", "-COMPLETED -DELETED")]
    assert block.view()[0].text == "-"
    assert block.view()[0].icon == "tasks"


def test_filter_tags_replace_filters():
    block = Taskwarrior(1, filter_tags=["home"], filters=[Filter("x", "y")])
    assert [f.name for f in block.filters] == ["filtered", "all"]
    assert block.filters[0].filter.endswith("+home")


@pytest.mark.parametrize(
    "count, state",
    [(0, State.IDLE), (9, State.IDLE), (10, State.WARNING), (19, State.WARNING), (20, State.CRITICAL)],
)
def test_state_for_thresholds(count, state):
    assert Taskwarrior(1).state_for(count) is state


def test_has_taskwarrior_follows_path_lookup(monkeypatch):
    monkeypatch.setattr(shutil, "which", lambda name: None)
    assert has_taskwarrior() is False
    monkeypatch.setattr(shutil, "which", lambda name: "/usr/bin/" + name)
    assert has_taskwarrior() is True


def test_update_without_taskwarrior(monkeypatch):
    monkeypatch.setattr(shutil, "which", lambda name: None)
    block = Taskwarrior(1, interval=30.0)
    assert block.update() == 30.0
    assert block.view()[0].text == "?"


def test_get_number_of_tasks_parses_output(with_task):
    fake = with_task(b"  42\n")
    assert get_number_of_tasks("+work") == 42
    assert fake.commands[0][-1] == "task rc.gc=off +work count"


def test_get_number_of_tasks_rejects_garbage(with_task):
    with_task(b"not a number\n")
    with pytest.raises(BlockError):
        get_number_of_tasks("")


@pytest.mark.parametrize(
    "output, expected",
    [(b"0\n", "none"), (b"1\n", "one 1"), (b"5\n", "many 5 pending")],
)
def test_update_picks_format_by_count(with_task, output, expected):
    with_task(output)
    block = Taskwarrior(
        1,
        format="many {count} {filter_name}",
        format_singular="one {count}",
        format_everything_done="none",
    )
    assert block.update() == 600.0
    assert block.view()[0].text == expected


def test_update_sets_critical_state(with_task):
    with_task(b"25\n")
    block = Taskwarrior(1)
    block.update()
    assert block.view()[0].state is State.CRITICAL
    assert block.view()[0].text == "25"


def test_right_click_rotates_filters(with_task):
    fake = with_task(b"3\n")
    block = Taskwarrior(1, filters=[Filter("a", "+a"), Filter("b", "+b")])
    block.click(MouseButton.RIGHT)
    assert block.filter_index == 1
    assert "+b" in fake.commands[-1][-1]
    block.click(MouseButton.RIGHT)
    assert block.filter_index == 0


def test_missing_filter_index_raises(with_task):
    with_task(b"3\n")
    block = Taskwarrior(1, filters=[])
    with pytest.raises(BlockError):
        block.update()