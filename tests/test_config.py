import argparse
import dataclasses

import pydantic
import pytest

from hwcounter.config import (
    PRESETS,
    ConfigurationError,
    CounterConfig,
    CountType,
    CtrlLoc,
    validate,
)


@pytest.mark.parametrize("name", list(PRESETS.keys()))
def test_presets_are_valid(name: str):
    config = PRESETS[name]
    assert validate(config) is config


@pytest.mark.parametrize(
    "kwargs",
    [
        dict(count_max=7),
        dict(count_max=1, reset_val=1),
        dict(count_max=7, count_type=CountType.UP_DOWN),
        dict(count_max=7, count_type=CountType.DOWN, wrap_ctrl=CtrlLoc.EXTERNAL),
        dict(count_max=7, inc_max=7, wrap_ctrl=CtrlLoc.EXTERNAL, custom_wrap=True),
        dict(count_max=7, inc_max=2, wrap_ctrl=CtrlLoc.TIE_FALSE),
        dict(count_max=7, inc_max=3, count_type=CountType.UP_MOD),
        dict(
            count_max=7,
            inc_max=2,
            count_type=CountType.UP_DOWN,
            custom_wrap=True,
            wrap_ctrl=CtrlLoc.INTERNAL,
        ),
        dict(count_max=7, change_ctrl=CtrlLoc.EXTERNAL, input_delay=3),
    ],
)
def test_valid_config(kwargs: dict):
    config = CounterConfig(**kwargs)
    assert config.count_max == kwargs["count_max"]


@pytest.mark.parametrize(
    "kwargs, invariant",
    [
        (dict(count_max=7, input_delay=-1), 1),
        (dict(count_max=-1), 2),
        (dict(count_max=7, reset_val=8), 3),
        (dict(count_max=7, reset_val=-1), 3),
        (dict(count_max=7, inc_max=0), 4),
        (dict(count_max=7, inc_max=8), 4),
        (dict(count_max=0), 4),
        (dict(count_max=7, wrap_ctrl=CtrlLoc.TIE_TRUE), 5),
        (dict(count_max=7, change_ctrl=CtrlLoc.INTERNAL), 6),
        (dict(count_max=7, change_ctrl=CtrlLoc.TIE_FALSE), 6),
        (dict(count_max=7, inc_max=2, count_type=CountType.DOWN), 7),
        (
            dict(
                count_max=7,
                inc_max=2,
                count_type=CountType.UP_DOWN,
                custom_wrap=True,
                wrap_ctrl=CtrlLoc.EXTERNAL,
            ),
            7,
        ),
        (
            dict(
                count_max=7,
                inc_max=2,
                count_type=CountType.DOWN,
                custom_wrap=False,
                wrap_ctrl=CtrlLoc.INTERNAL,
            ),
            7,
        ),
        (dict(count_max=7, inc_max=2, wrap_ctrl=CtrlLoc.EXTERNAL), 8),
    ],
)
def test_invalid_config(kwargs: dict, invariant: int):
    with pytest.raises(ConfigurationError) as e:
        CounterConfig(**kwargs)
    assert e.value.invariant == invariant
    assert f"invariant {invariant}" in str(e.value)


def test_first_violation_wins():
    # reset_val(3) と wrap_ctrl(5) の両方に違反
    with pytest.raises(ConfigurationError) as e:
        CounterConfig(count_max=7, reset_val=9, wrap_ctrl=CtrlLoc.TIE_TRUE)
    assert e.value.invariant == 3


def test_field_type_is_checked():
    with pytest.raises(pydantic.ValidationError):
        CounterConfig(count_max="many")


def test_enum_from_value():
    config = CounterConfig(count_max=7, count_type="up_down", wrap_ctrl="internal")
    assert config.count_type == CountType.UP_DOWN
    assert config.wrap_ctrl == CtrlLoc.INTERNAL


def test_config_is_frozen():
    config = CounterConfig(count_max=7)
    with pytest.raises(dataclasses.FrozenInstanceError):
        config.count_max = 8


@pytest.mark.parametrize(
    "count_max, width",
    [
        (1, 1),
        (7, 3),
        (8, 4),
        (15, 4),
        (59, 6),
        (255, 8),
    ],
)
def test_width(count_max: int, width: int):
    assert CounterConfig(count_max=count_max).width == width


@pytest.mark.parametrize(
    "kwargs, ports",
    [
        (dict(count_max=7), {"max"}),
        (dict(count_max=7, wrap_ctrl=CtrlLoc.TIE_FALSE), set()),
        (dict(count_max=7, count_type=CountType.UP_DOWN), {"up_down", "max"}),
        (dict(count_max=7, inc_max=3, count_type=CountType.UP_MOD), {"inc", "mod_n"}),
        (
            dict(
                count_max=7,
                wrap_ctrl=CtrlLoc.EXTERNAL,
                change_ctrl=CtrlLoc.EXTERNAL,
                custom_wrap=True,
            ),
            {"wrap_in", "change_in", "wrap_to"},
        ),
    ],
)
def test_port_presence(kwargs: dict, ports: set):
    config = CounterConfig(**kwargs)
    actual = {
        name
        for name in ("up_down", "inc", "wrap_to", "max", "mod_n", "wrap_in", "change_in")
        if getattr(config, f"has_{name}")
    }
    assert actual == ports


def test_chainable():
    assert CounterConfig(count_max=9, change_ctrl=CtrlLoc.EXTERNAL).is_chainable
    assert not CounterConfig(count_max=9).is_chainable
    assert not CounterConfig(
        count_max=9,
        change_ctrl=CtrlLoc.EXTERNAL,
        count_type=CountType.UP_DOWN,
    ).is_chainable


def test_output_delay_follows_input_delay():
    assert CounterConfig(count_max=7, input_delay=4).output_delay == 4


def test_from_args():
    parser = CounterConfig.setup_parser(argparse.ArgumentParser())
    args = parser.parse_args(
        ["--count-max", "9", "--count-type", "up_down", "--change-ctrl", "external"]
    )
    config = CounterConfig.from_args(args)
    assert config == CounterConfig(
        count_max=9,
        count_type=CountType.UP_DOWN,
        change_ctrl=CtrlLoc.EXTERNAL,
    )
