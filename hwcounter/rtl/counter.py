import logging

from amaranth import Const, Module, Mux, Signal, Value
from amaranth.build.plat import Platform
from amaranth.lib import wiring
from amaranth.lib.wiring import In, Out

from hwcounter.config import CounterConfig, CountType, CtrlLoc, LogicDefect


class CounterCtrlSignature(wiring.Signature):
    """
    Control signals used to chain counters (ctrl_out of one counter -> ctrl_in of the next).
    Members:
        reset: Load reset_val. Always present.
        wrap: Wrap now. Present only with external wrap_ctrl.
        change: Update now. Present only with external change_ctrl.
    """

    def __init__(self, config: CounterConfig):
        members = {"reset": Out(1)}
        if config.has_wrap_in:
            members["wrap"] = Out(1)
        if config.has_change_in:
            members["change"] = Out(1)
        super().__init__(members)


class Counter(wiring.Component):
    """
    Counter is a configurable counter. The ports depend on the configuration.
    Attributes:
        ctrl_in (In): reset, and wrap/change when they are external.
        ctrl_out (Out): ctrl_in mirrored for a downstream counter.
        out (Out): Current count (before this cycle's update).
        up_down (In): Count down when high. UP_DOWN counters only.
        inc (In): Increment of this cycle. Only when inc_max != 1.
        wrap_to (In): Wrap target. Only with custom_wrap.
        max (In): Ceiling used for the default wrap. Only with internal wrap_ctrl (not UP_MOD).
        mod_n (In): Modulus. UP_MOD counters only.
    """

    def __init__(self, config: CounterConfig):
        self._config = config

        members = {
            "ctrl_in": In(CounterCtrlSignature(config)),
            "ctrl_out": Out(CounterCtrlSignature(config)),
            "out": Out(range(config.count_max + 1)),
        }
        if config.has_up_down:
            members["up_down"] = In(1)
        if config.has_inc:
            members["inc"] = In(range(config.inc_max + 1), init=1)
        if config.has_wrap_to:
            members["wrap_to"] = In(range(config.count_max + 1))
        if config.has_max:
            members["max"] = In(range(config.count_max + 1), init=config.count_max)
        if config.has_mod_n:
            members["mod_n"] = In(range(config.count_max + 2), init=config.count_max + 1)
        super().__init__(members)

    @property
    def config(self) -> CounterConfig:
        return self._config

    def _wrap(self, eq0: Value, eq_max: Value, up_custom_wrap: Value, overflow: Value) -> Value:
        config = self._config
        if config.wrap_ctrl == CtrlLoc.EXTERNAL:
            return self.ctrl_in.wrap
        elif config.wrap_ctrl == CtrlLoc.TIE_FALSE:
            return Const(0)
        elif config.wrap_ctrl == CtrlLoc.INTERNAL:
            if config.count_type == CountType.UP_DOWN:
                return Mux(self.up_down, eq0, eq_max)
            elif config.count_type == CountType.DOWN:
                return eq0
            elif config.count_type == CountType.UP:
                return up_custom_wrap if config.inc_max > 1 else eq_max
            elif config.count_type == CountType.UP_MOD:
                return overflow
            else:
                raise LogicDefect(f"no internal wrap for {config.count_type=}")
        else:
            raise LogicDefect(f"no wrap logic for {config.wrap_ctrl=}")

    def _wrap_to(self, max_: Value) -> Value:
        config = self._config
        if config.custom_wrap:
            return self.wrap_to
        if config.count_type == CountType.UP_DOWN:
            return Mux(self.up_down, max_, 0)
        elif config.count_type == CountType.DOWN:
            return max_
        elif config.count_type in (CountType.UP, CountType.UP_MOD):
            return Const(0)
        else:
            raise LogicDefect(f"no wrap target for {config.count_type=}")

    def _change(self) -> Value:
        config = self._config
        if config.change_ctrl == CtrlLoc.EXTERNAL:
            return self.ctrl_in.change
        elif config.change_ctrl == CtrlLoc.TIE_TRUE:
            return Const(1)
        else:
            raise LogicDefect(f"no change logic for {config.change_ctrl=}")

    def elaborate(self, platform: Platform) -> Module:
        m = Module()
        config = self._config
        logging.debug(f"Elaborating {config.describe()}")

        count = Signal(range(config.count_max + 1), init=config.reset_val)
        m.d.comb += self.out.eq(count)

        # 省略された入力は default 値
        inc = Signal(range(config.inc_max + 1))
        max_ = Signal(range(config.count_max + 1))
        m.d.comb += [
            inc.eq(self.inc if config.has_inc else 1),
            max_.eq(self.max if config.has_max else config.count_max),
        ]

        eq0 = Signal()
        eq_max = Signal()
        m.d.comb += [
            eq0.eq(count == 0),
            eq_max.eq(count == max_),
        ]

        # (count + inc) mod (max + 1) と overflow 検出
        up_custom = Signal(range(config.count_max + 1))
        up_custom_wrap = Signal()
        m.d.comb += [
            up_custom.eq((count + inc) % (max_ + 1)),
            up_custom_wrap.eq((count + inc) > max_),
        ]

        mod_out = Signal(range(config.count_max + config.inc_max + 1))
        overflow = Signal()
        if config.has_mod_n:
            m.d.comb += [
                mod_out.eq((count + inc) % self.mod_n),
                overflow.eq((count + inc) >= self.mod_n),
            ]
        else:
            m.d.comb += mod_out.eq(count + inc)

        wrap = Signal()
        wrap_to = Signal(range(config.count_max + 1))
        m.d.comb += [
            wrap.eq(self._wrap(eq0, eq_max, up_custom_wrap, overflow)),
            wrap_to.eq(self._wrap_to(max_)),
        ]

        # up/down/next は register 幅で切り捨て
        up = Signal(config.width)
        down = Signal(config.width)
        if config.inc_max == 1 or (
            config.wrap_ctrl == CtrlLoc.EXTERNAL and config.custom_wrap
        ):
            m.d.comb += up.eq(count + inc)
        else:
            m.d.comb += up.eq(up_custom)
        m.d.comb += down.eq(count - inc)

        next_in_seq = Signal(config.width)
        if config.count_type == CountType.UP_DOWN:
            m.d.comb += next_in_seq.eq(Mux(self.up_down, down, up))
        elif config.count_type == CountType.UP:
            m.d.comb += next_in_seq.eq(up)
        elif config.count_type == CountType.DOWN:
            m.d.comb += next_in_seq.eq(down)
        elif config.count_type == CountType.UP_MOD:
            m.d.comb += next_in_seq.eq(mod_out)
        else:
            raise LogicDefect(f"no sequence for {config.count_type=}")

        next_count = Signal(config.width)
        already_wrapped = config.wrap_ctrl == CtrlLoc.INTERNAL and (
            config.count_type == CountType.UP_MOD
            or (
                config.count_type == CountType.UP
                and config.inc_max > 1
                and not config.custom_wrap
            )
        )
        if already_wrapped:
            m.d.comb += next_count.eq(next_in_seq)
        else:
            m.d.comb += next_count.eq(Mux(wrap, wrap_to, next_in_seq))

        # reset は全ての入力に優先
        with m.If(self.ctrl_in.reset):
            m.d.sync += count.eq(config.reset_val)
        with m.Elif(self._change()):
            m.d.sync += count.eq(next_count)

        m.d.comb += self.ctrl_out.reset.eq(self.ctrl_in.reset)
        if config.has_wrap_in:
            m.d.comb += self.ctrl_out.wrap.eq(wrap)
        if config.has_change_in:
            m.d.comb += self.ctrl_out.change.eq(wrap & self.ctrl_in.change)

        return m
