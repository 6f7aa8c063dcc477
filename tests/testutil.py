import random

from amaranth.sim import SimulatorContext

from hwcounter.config import CounterConfig
from hwcounter.emu.counter import CounterInputs, CtrlSignals
from hwcounter.rtl.counter import Counter


def random_inputs(rng: random.Random, config: CounterConfig, reset_rate: float = 0.05) -> CounterInputs:
    """
    Random inputs of one cycle that match the ports of the configuration
    """
    ctrl_in = CtrlSignals(
        reset=rng.random() < reset_rate,
        wrap=(rng.random() < 0.2) if config.has_wrap_in else None,
        change=(rng.random() < 0.7) if config.has_change_in else None,
    )
    max_ = rng.randint(0, config.count_max) if config.has_max else None
    return CounterInputs(
        ctrl_in=ctrl_in,
        up_down=(rng.random() < 0.5) if config.has_up_down else None,
        inc=rng.randint(0, config.inc_max) if config.has_inc else None,
        wrap_to=rng.randint(0, config.count_max) if config.has_wrap_to else None,
        max=max_,
        mod_n=rng.randint(1, config.count_max + 1) if config.has_mod_n else None,
    )


def apply_inputs(ctx: SimulatorContext, dut: Counter, inputs: CounterInputs) -> None:
    """
    Drive the DUT ports from CounterInputs. Absent optional inputs go back to their defaults.
    """
    config = dut.config
    ctx.set(dut.ctrl_in.reset, inputs.ctrl_in.reset)
    if config.has_wrap_in:
        ctx.set(dut.ctrl_in.wrap, inputs.ctrl_in.wrap)
    if config.has_change_in:
        ctx.set(dut.ctrl_in.change, inputs.ctrl_in.change)
    if config.has_up_down:
        ctx.set(dut.up_down, inputs.up_down)
    if config.has_inc:
        ctx.set(dut.inc, 1 if inputs.inc is None else inputs.inc)
    if config.has_wrap_to:
        ctx.set(dut.wrap_to, inputs.wrap_to)
    if config.has_max:
        ctx.set(dut.max, config.count_max if inputs.max is None else inputs.max)
    if config.has_mod_n:
        ctx.set(dut.mod_n, inputs.mod_n)


def sample_ctrl_out(ctx: SimulatorContext, dut: Counter) -> CtrlSignals:
    config = dut.config
    return CtrlSignals(
        reset=bool(ctx.get(dut.ctrl_out.reset)),
        wrap=bool(ctx.get(dut.ctrl_out.wrap)) if config.has_wrap_in else None,
        change=bool(ctx.get(dut.ctrl_out.change)) if config.has_change_in else None,
    )
