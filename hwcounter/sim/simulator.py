import argparse
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from amaranth.lib import wiring
from amaranth.sim import Simulator


@dataclass
class RtlSim:
    """
    The result of simulation
    """

    name: str
    vcd_path: str
    gtkw_path: str

    @staticmethod
    def create_dst_path(file_name: str, dist_file_dir: str) -> str:
        """
        Get the path of the generated file
        """
        Path(dist_file_dir).mkdir(parents=True, exist_ok=True)
        return str(Path(dist_file_dir) / file_name)

    @staticmethod
    def default_traces(dut: wiring.Component) -> List:
        """
        Top-level ports of the DUT, in signature order
        """
        return [value for _, _, value in dut.signature.flatten(dut)]

    @classmethod
    def run(
        cls,
        name: str,
        dut: wiring.Component,
        testbench: Callable,
        clock: float = 1e6,
        setup_f: Optional[Callable[[Simulator], None]] = None,
        dist_file_dir: str = "dist_sim",
    ) -> "RtlSim":
        """
        Run a testbench on a DUT and dump the waveform.
        Args:
            name (str): The name of the test.
            dut (wiring.Component): The device under test.
            testbench (Callable): The testbench function.
            clock (float): The sync clock frequency.
            setup_f (Optional[Callable[Simulator]]): The setup function.
            dist_file_dir (str): The directory to store the waveform files.

        Returns:
            RtlSim: The paths of the generated files.
        """
        sim = Simulator(dut)
        sim.add_clock(1 / clock)
        sim.add_testbench(testbench)
        if setup_f is not None:
            setup_f(sim)

        vcd_path = cls.create_dst_path(f"{name}.vcd", dist_file_dir=dist_file_dir)
        gtkw_path = cls.create_dst_path(f"{name}.gtkw", dist_file_dir=dist_file_dir)
        logging.debug(f"Simulating {name}: {vcd_path}")
        with sim.write_vcd(
            vcd_path, gtkw_file=gtkw_path, traces=cls.default_traces(dut)
        ):
            sim.run()

        return cls(name=name, vcd_path=vcd_path, gtkw_path=gtkw_path)

    @staticmethod
    def setup_parser(parser: argparse.ArgumentParser) -> argparse.ArgumentParser:
        """
        Add arguments to the parser
        """
        parser.set_defaults(
            func=lambda args: print(
                "Simulations run as pytest scenarios. Please run them with `pytest tests/rtl`."
            )
        )
        return parser
