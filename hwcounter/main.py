import argparse
import logging
from typing import List, Optional

from hwcounter.emu.emulator import Emulator
from hwcounter.rtl.builder import RtlBuild
from hwcounter.sim.simulator import RtlSim


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hwcounter")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level",
    )

    # subparserのコマンドでsubpackageのparserを追加
    subparsers = parser.add_subparsers(
        dest="action", help="Select the action to perform", required=True
    )
    RtlBuild.setup_parser(subparsers.add_parser("build", help="Generate RTL files"))
    Emulator.setup_parser(
        subparsers.add_parser("emu", help="Run the behavioral counter model")
    )
    RtlSim.setup_parser(subparsers.add_parser("sim", help="Run the simulator"))
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    args = create_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level)
    args.func(args)


if __name__ == "__main__":
    main()
