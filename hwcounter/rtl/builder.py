import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List

from amaranth.back import cxxrtl, verilog
from amaranth.lib.wiring import Component
from tqdm import tqdm

from hwcounter.config import PRESETS, ConfigurationError, CounterConfig, CtrlLoc
from hwcounter.rtl.chain import CounterChain
from hwcounter.rtl.counter import Counter


class RtlBuild:
    @staticmethod
    def create_dst_path(file_name: str, dist_file_dir: str) -> str:
        """
        Generate a file path for the dist directory
        """
        Path(dist_file_dir).mkdir(parents=True, exist_ok=True)
        return str(Path(dist_file_dir) / file_name)

    @classmethod
    def export(
        cls,
        component: Component,
        name: str,
        dist_file_dir: str = "dist_rtl",
        with_cxxrtl: bool = True,
    ) -> List[str]:
        """
        Convert a wiring.Component to Verilog (and CXXRTL) files

        Returns:
            List[str]: The paths of the written files.
        """
        verilog_path = cls.create_dst_path(f"{name}.v", dist_file_dir=dist_file_dir)
        Path(verilog_path).write_text(verilog.convert(component, name=name))
        dst = [verilog_path]

        if with_cxxrtl:
            cxx_path = cls.create_dst_path(f"{name}.cpp", dist_file_dir=dist_file_dir)
            Path(cxx_path).write_text(cxxrtl.convert(component, name=name))
            dst.append(cxx_path)
        return dst

    @staticmethod
    def preset_components() -> Dict[str, Component]:
        dst: Dict[str, Component] = {
            f"counter_{name}": Counter(config) for name, config in PRESETS.items()
        }
        # 60 進 x 24 進 (時計)
        dst["counter_chain_clock"] = CounterChain(
            [
                CounterConfig(count_max=59, change_ctrl=CtrlLoc.EXTERNAL),
                CounterConfig(count_max=59, change_ctrl=CtrlLoc.EXTERNAL),
                CounterConfig(count_max=23, change_ctrl=CtrlLoc.EXTERNAL),
            ]
        )
        return dst

    @classmethod
    def main(cls, args: argparse.Namespace) -> None:
        if args.preset:
            components = cls.preset_components()
        else:
            try:
                config = CounterConfig.from_args(args)
            except ConfigurationError as e:
                logging.error(f"Invalid counter configuration: {e}")
                sys.exit(1)
            logging.info(f"Building {config.describe()}")
            components = {args.name: Counter(config)}

        for name, component in tqdm(
            components.items(), desc="Generating RTL files", unit="file"
        ):
            logging.debug(f"Generating {name}")
            for path in cls.export(
                component=component,
                name=name,
                dist_file_dir=args.dist_file_dir,
                with_cxxrtl=not args.skip_cxxrtl,
            ):
                logging.info(f"Wrote {path}")

    @classmethod
    def setup_parser(cls, parser: argparse.ArgumentParser) -> argparse.ArgumentParser:
        CounterConfig.setup_parser(parser)
        parser.add_argument(
            "--preset",
            action="store_true",
            help="Build all preset counters instead of the counter options",
        )
        parser.add_argument(
            "--name",
            default="counter",
            help="Module name of the generated counter",
        )
        parser.add_argument(
            "--skip-cxxrtl",
            action="store_true",
            help="Generate Verilog only",
        )
        parser.add_argument(
            "--dist-file-dir",
            default="dist_rtl",
            help="The directory to store RTL files",
        )
        parser.set_defaults(func=cls.main)
        return parser
