import argparse
import logging
import sys
from typing import List, Optional

from rich import print
from rich.table import Table

from hwcounter.config import ConfigurationError, CounterConfig
from hwcounter.emu.counter import (
    CounterEmu,
    CounterInputError,
    CounterInputs,
    CounterStep,
    CtrlSignals,
)


def _pulse(cycle: int, period: Optional[int]) -> bool:
    """
    High once every `period` cycles (on the last cycle of each period). None means never.
    """
    return period is not None and period > 0 and (cycle + 1) % period == 0


class Emulator:
    @staticmethod
    def stimulus(config: CounterConfig, args: argparse.Namespace, cycle: int) -> CounterInputs:
        """
        Build the inputs of one cycle from the command line options
        """
        ctrl_in = CtrlSignals(
            reset=cycle in args.reset_at,
            wrap=_pulse(cycle, args.wrap_period) if config.has_wrap_in else None,
            change=(
                (args.change_period is None or _pulse(cycle, args.change_period))
                if config.has_change_in
                else None
            ),
        )
        return CounterInputs(
            ctrl_in=ctrl_in,
            up_down=args.up_down if config.has_up_down else None,
            inc=args.inc if config.has_inc else None,
            wrap_to=args.wrap_to if config.has_wrap_to else None,
            max=args.max if config.has_max else None,
            mod_n=(args.mod_n or config.count_max + 1) if config.has_mod_n else None,
        )

    @classmethod
    def run(cls, config: CounterConfig, args: argparse.Namespace) -> List[CounterStep]:
        emu = CounterEmu(config)
        return [emu.step(cls.stimulus(config, args, cycle)) for cycle in range(args.steps)]

    @staticmethod
    def render(config: CounterConfig, steps: List[CounterStep]) -> Table:
        table = Table(title=config.describe())
        table.add_column("cycle", justify="right")
        table.add_column("out", justify="right")
        table.add_column("next", justify="right")
        table.add_column("wrap")
        table.add_column("ctrl_out")
        for cycle, step in enumerate(steps):
            table.add_row(
                str(cycle),
                str(step.out),
                str(step.next_count),
                "x" if step.wrap else "",
                str(step.ctrl_out),
            )
        return table

    @classmethod
    def main(cls, args: argparse.Namespace) -> None:
        try:
            config = CounterConfig.from_args(args)
        except ConfigurationError as e:
            logging.error(f"Invalid counter configuration: {e}")
            sys.exit(1)
        logging.info(f"Emulating {config.describe()} for {args.steps} cycles")

        try:
            steps = cls.run(config, args)
        except CounterInputError as e:
            logging.error(f"Invalid counter inputs: {e}")
            sys.exit(1)
        print(cls.render(config, steps))

    @classmethod
    def setup_parser(cls, parser: argparse.ArgumentParser) -> argparse.ArgumentParser:
        CounterConfig.setup_parser(parser)
        parser.add_argument("--steps", type=int, default=32, help="Number of cycles")
        parser.add_argument("--inc", type=int, default=None, help="inc input")
        parser.add_argument("--max", type=int, default=None, help="max input")
        parser.add_argument("--wrap-to", type=int, default=0, help="wrap_to input")
        parser.add_argument("--mod-n", type=int, default=None, help="mod_n input")
        parser.add_argument("--up-down", action="store_true", help="Count down")
        parser.add_argument(
            "--wrap-period",
            type=int,
            default=None,
            help="Assert the external wrap every N cycles",
        )
        parser.add_argument(
            "--change-period",
            type=int,
            default=None,
            help="Assert the external change every N cycles (default: always)",
        )
        parser.add_argument(
            "--reset-at",
            type=int,
            nargs="*",
            default=[],
            help="Cycles at which reset is asserted",
        )
        parser.set_defaults(func=cls.main)
        return parser
