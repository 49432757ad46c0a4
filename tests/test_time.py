import pytest

from barblocks.template import BlockError
from barblocks.time import Time


def test_utc_zone_name():
    block = Time(1, timezone="UTC")
    assert block.formatted("%Z") == "UTC"


def test_literal_format_passes_through():
    block = Time(1, format="hello")
    block.update()
    assert block.view()[0].text == "hello"


def test_update_returns_interval_and_sets_icon():
    block = Time(1, format="%H", interval=7.0, timezone="UTC")
    assert block.update() == 7.0
    widget = block.view()[0]
    assert widget.icon == "time"
    assert widget.text.isdigit() and len(widget.text) == 2


def test_default_format_is_used():
    block = Time(1)
    assert block.format == "%a %d/%m %R"


def test_invalid_timezone_raises():
    with pytest.raises(BlockError):
        Time(1, timezone="Not/AZone")


def test_invalid_locale_raises():
    block = Time(1, locale="xx_INVALID")
    with pytest.raises(BlockError):
        block.update()


def test_unknown_placeholder_in_format_raises():
    with pytest.raises(BlockError):
        Time(1, format="{missing}")