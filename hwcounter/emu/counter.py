import logging
from dataclasses import dataclass, field, replace
from typing import List, Optional, Sequence, Tuple

from hwcounter.config import CounterConfig, CountType, CtrlLoc, LogicDefect


class CounterInputError(ValueError):
    """
    Per-cycle inputs do not match the ports the configuration provides.
    """


@dataclass(frozen=True)
class CtrlSignals:
    """
    Control signals used to chain counters. None means the field does not exist.
    Attributes:
        reset (bool): Load reset_val, overriding everything else.
        wrap (Optional[bool]): Wrap now (only with external wrap_ctrl).
        change (Optional[bool]): Update now (only with external change_ctrl).
    """

    reset: bool = False
    wrap: Optional[bool] = None
    change: Optional[bool] = None


@dataclass(frozen=True)
class CounterInputs:
    """
    Inputs of one cycle. None means the port is absent (or left at its default).
    """

    ctrl_in: CtrlSignals = field(default_factory=CtrlSignals)
    up_down: Optional[bool] = None
    inc: Optional[int] = None
    wrap_to: Optional[int] = None
    max: Optional[int] = None
    mod_n: Optional[int] = None


@dataclass(frozen=True)
class CounterStep:
    """
    Result of one cycle
    Attributes:
        out (int): Count visible during the cycle (before the update).
        next_count (int): Count committed at the end of the cycle.
        wrap (bool): Resolved wrap condition.
        ctrl_out (CtrlSignals): Control outputs for a downstream counter.
    """

    out: int
    next_count: int
    wrap: bool
    ctrl_out: CtrlSignals


def check_inputs(config: CounterConfig, inputs: CounterInputs) -> None:
    """
    Check that the inputs carry exactly the ports of the configuration, with in-range values.

    Raises:
        CounterInputError: If a port is missing, unexpected or out of range.
    """

    def check_presence(name: str, value, present: bool, required: bool) -> None:
        if value is not None and not present:
            raise CounterInputError(f"{name} is not a port of {config.describe()}")
        if value is None and required:
            raise CounterInputError(f"{name} is required by {config.describe()}")

    ctrl_in = inputs.ctrl_in
    check_presence("ctrl_in.wrap", ctrl_in.wrap, config.has_wrap_in, config.has_wrap_in)
    check_presence(
        "ctrl_in.change", ctrl_in.change, config.has_change_in, config.has_change_in
    )
    check_presence("up_down", inputs.up_down, config.has_up_down, config.has_up_down)
    check_presence("inc", inputs.inc, config.has_inc, False)
    check_presence("wrap_to", inputs.wrap_to, config.has_wrap_to, config.has_wrap_to)
    check_presence("max", inputs.max, config.has_max, False)
    check_presence("mod_n", inputs.mod_n, config.has_mod_n, config.has_mod_n)

    if inputs.inc is not None and not (0 <= inputs.inc <= config.inc_max):
        raise CounterInputError(f"inc must be in [0, {config.inc_max}]: {inputs.inc=}")
    for name, value in (("wrap_to", inputs.wrap_to), ("max", inputs.max)):
        if value is not None and not (0 <= value <= config.count_max):
            raise CounterInputError(f"{name} must be in [0, {config.count_max}]: {value=}")
    if inputs.mod_n is not None and inputs.mod_n < 1:
        raise CounterInputError(f"mod_n must be positive: {inputs.mod_n=}")


def resolve_inc(config: CounterConfig, inputs: CounterInputs) -> int:
    return 1 if inputs.inc is None else inputs.inc


def resolve_max(config: CounterConfig, inputs: CounterInputs) -> int:
    return config.count_max if inputs.max is None else inputs.max


def add_custom(count: int, inc: int, max_: int) -> Tuple[int, bool]:
    """
    (count + inc) mod (max + 1), and whether the plain sum exceeds max
    """
    total = count + inc
    return total % (max_ + 1), total > max_


def add_mod(count: int, inc: int, mod_n: Optional[int]) -> Tuple[int, bool]:
    """
    (count + inc) mod mod_n, and whether the plain sum reached mod_n
    """
    total = count + inc
    if mod_n is None:
        return total, False
    return total % mod_n, total >= mod_n


def resolve_wrap(
    config: CounterConfig,
    inputs: CounterInputs,
    eq0: bool,
    eq_max: bool,
    up_custom_wrap: bool,
    overflow: bool,
) -> bool:
    if config.wrap_ctrl == CtrlLoc.EXTERNAL:
        return bool(inputs.ctrl_in.wrap)
    elif config.wrap_ctrl == CtrlLoc.TIE_FALSE:
        return False
    elif config.wrap_ctrl == CtrlLoc.INTERNAL:
        if config.count_type == CountType.UP_DOWN:
            return eq0 if inputs.up_down else eq_max
        elif config.count_type == CountType.DOWN:
            return eq0
        elif config.count_type == CountType.UP:
            # inc > 1 だと max と一致せずに通り過ぎるので overflow で判定
            return up_custom_wrap if config.inc_max > 1 else eq_max
        elif config.count_type == CountType.UP_MOD:
            return overflow
        else:
            raise LogicDefect(f"no internal wrap for {config.count_type=}")
    else:
        raise LogicDefect(f"no wrap logic for {config.wrap_ctrl=}")


def resolve_wrap_to(config: CounterConfig, inputs: CounterInputs, max_: int) -> int:
    if config.custom_wrap:
        return inputs.wrap_to
    if config.count_type == CountType.UP_DOWN:
        return max_ if inputs.up_down else 0
    elif config.count_type == CountType.DOWN:
        return max_
    elif config.count_type in (CountType.UP, CountType.UP_MOD):
        return 0
    else:
        raise LogicDefect(f"no wrap target for {config.count_type=}")


def next_state(config: CounterConfig, count: int, inputs: CounterInputs) -> CounterStep:
    """
    Compute one cycle of the counter.

    Args:
        config: Validated configuration.
        count: Current count.
        inputs: Inputs of this cycle, already checked with check_inputs().

    Returns:
        CounterStep: The output of this cycle and the committed next count.
    """
    inc = resolve_inc(config, inputs)
    max_ = resolve_max(config, inputs)
    eq0 = count == 0
    eq_max = count == max_

    up_custom, up_custom_wrap = add_custom(count, inc, max_)
    mod_out, overflow = add_mod(count, inc, inputs.mod_n)
    wrap = resolve_wrap(config, inputs, eq0, eq_max, up_custom_wrap, overflow)
    wrap_to = resolve_wrap_to(config, inputs, max_)

    if config.inc_max == 1 or (
        config.wrap_ctrl == CtrlLoc.EXTERNAL and config.custom_wrap
    ):
        up = count + inc
    else:
        up = up_custom
    down = count - inc

    if config.count_type == CountType.UP_DOWN:
        next_in_seq = down if inputs.up_down else up
    elif config.count_type == CountType.UP:
        next_in_seq = up
    elif config.count_type == CountType.DOWN:
        next_in_seq = down
    elif config.count_type == CountType.UP_MOD:
        next_in_seq = mod_out
    else:
        raise LogicDefect(f"no sequence for {config.count_type=}")

    # modulo/overflow 加算済みの場合は wrap_to を選択しない
    already_wrapped = config.wrap_ctrl == CtrlLoc.INTERNAL and (
        config.count_type == CountType.UP_MOD
        or (
            config.count_type == CountType.UP
            and config.inc_max > 1
            and not config.custom_wrap
        )
    )
    if already_wrapped:
        next_count = next_in_seq
    else:
        next_count = wrap_to if wrap else next_in_seq

    ctrl_in = inputs.ctrl_in
    if config.change_ctrl == CtrlLoc.EXTERNAL:
        new_on_clk = next_count if ctrl_in.change else count
    elif config.change_ctrl == CtrlLoc.TIE_TRUE:
        new_on_clk = next_count
    else:
        raise LogicDefect(f"no change logic for {config.change_ctrl=}")

    committed = config.reset_val if ctrl_in.reset else new_on_clk
    # register width で切り捨て (hardware と同じ)
    committed &= (1 << config.width) - 1

    ctrl_out = CtrlSignals(
        reset=ctrl_in.reset,
        wrap=wrap if config.has_wrap_in else None,
        change=(wrap and bool(ctrl_in.change)) if config.has_change_in else None,
    )
    return CounterStep(out=count, next_count=committed, wrap=wrap, ctrl_out=ctrl_out)


class CounterEmu:
    """
    Cycle-level behavioral model of one counter. Owns its count exclusively.
    """

    def __init__(self, config: CounterConfig):
        self.config = config
        self.count = config.reset_val
        self.cycle = 0

    def reset(self) -> None:
        self.count = self.config.reset_val
        self.cycle = 0

    def step(self, inputs: Optional[CounterInputs] = None) -> CounterStep:
        if inputs is None:
            inputs = CounterInputs()
        check_inputs(self.config, inputs)
        result = next_state(self.config, self.count, inputs)
        logging.debug(
            f"[{self.cycle}] out={result.out} next={result.next_count} wrap={result.wrap}"
        )
        self.count = result.next_count
        self.cycle += 1
        return result


class CounterChainEmu:
    """
    Counters chained so that each stage counts the wraps of the previous one.
    Stage k's ctrl_out feeds stage k+1's ctrl_in.
    """

    def __init__(self, configs: Sequence[CounterConfig]):
        for idx, config in enumerate(configs):
            if not config.is_chainable:
                raise ValueError(
                    f"stage {idx} cannot be chained: {config.describe()}"
                )
        self.stages: List[CounterEmu] = [CounterEmu(config) for config in configs]

    @property
    def counts(self) -> List[int]:
        return [stage.count for stage in self.stages]

    def step(self, reset: bool = False, change: bool = True) -> List[CounterStep]:
        ctrl = CtrlSignals(reset=reset, change=change)
        results = []
        for stage in self.stages:
            result = stage.step(CounterInputs(ctrl_in=ctrl))
            results.append(result)
            ctrl = replace(result.ctrl_out, wrap=None)
        return results
