import pytest

from hwcounter.config import CounterConfig
from hwcounter.emu.emulator import Emulator
from hwcounter.main import create_parser, main


def test_log_level_choices():
    args = create_parser().parse_args(["--log-level", "DEBUG", "sim"])
    assert args.log_level == "DEBUG"
    assert args.action == "sim"


def test_action_is_required():
    with pytest.raises(SystemExit):
        create_parser().parse_args([])


def test_emu_trace():
    args = create_parser().parse_args(["emu", "--count-max", "3", "--steps", "6"])
    steps = Emulator.run(CounterConfig.from_args(args), args)
    assert [step.out for step in steps] == [0, 1, 2, 3, 0, 1]
    assert [step.wrap for step in steps] == [False, False, False, True, False, False]


def test_emu_external_change_and_reset():
    args = create_parser().parse_args(
        [
            "emu",
            "--count-max",
            "7",
            "--change-ctrl",
            "external",
            "--change-period",
            "2",
            "--reset-at",
            "5",
            "--steps",
            "8",
        ]
    )
    steps = Emulator.run(CounterConfig.from_args(args), args)
    # change は 2 cycle に 1 回、cycle 5 で reset
    assert [step.out for step in steps] == [0, 0, 1, 1, 2, 2, 0, 0]


def test_emu_modulo():
    args = create_parser().parse_args(
        ["emu", "--count-max", "7", "--count-type", "up_mod", "--mod-n", "3", "--steps", "5"]
    )
    steps = Emulator.run(CounterConfig.from_args(args), args)
    assert [step.out for step in steps] == [0, 1, 2, 0, 1]


def test_emu_prints_table(capsys):
    main(["emu", "--count-max", "3", "--steps", "4"])
    captured = capsys.readouterr()
    assert "cycle" in captured.out


def test_invalid_config_exits():
    with pytest.raises(SystemExit) as e:
        main(["emu", "--count-max", "3", "--wrap-ctrl", "tie_true"])
    assert e.value.code == 1
