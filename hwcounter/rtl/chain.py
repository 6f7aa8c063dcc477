from typing import List, Sequence

from amaranth import Module, Signal
from amaranth.build.plat import Platform
from amaranth.lib import wiring
from amaranth.lib.wiring import In, Out

from hwcounter.config import CounterConfig
from hwcounter.rtl.counter import Counter


class CounterChain(wiring.Component):
    """
    CounterChain cascades counters: stage k+1 changes only when stage k wraps while changing.
    Attributes:
        en (In): Change input of stage 0.
        reset (In): Reset of every stage (propagated through ctrl_out.reset).
        carry (Out): ctrl_out.change of the last stage.
        out_{k} (Out): Count of stage k.
    """

    def __init__(self, configs: Sequence[CounterConfig]):
        if len(configs) == 0:
            raise ValueError("CounterChain needs at least one stage")
        for idx, config in enumerate(configs):
            if not config.is_chainable:
                raise ValueError(f"stage {idx} cannot be chained: {config.describe()}")

        members = {
            "en": In(1),
            "reset": In(1),
            "carry": Out(1),
        }
        for idx, config in enumerate(configs):
            members[f"out_{idx}"] = Out(range(config.count_max + 1))
        super().__init__(members)

        self.stages: List[Counter] = [Counter(config) for config in configs]

    @property
    def outs(self) -> List[Signal]:
        return [getattr(self, f"out_{idx}") for idx in range(len(self.stages))]

    def elaborate(self, platform: Platform) -> Module:
        m = Module()

        change = self.en
        reset = self.reset
        for idx, (stage, out) in enumerate(zip(self.stages, self.outs)):
            m.submodules[f"stage_{idx}"] = stage
            m.d.comb += [
                stage.ctrl_in.change.eq(change),
                stage.ctrl_in.reset.eq(reset),
                out.eq(stage.out),
            ]
            # 次段へは ctrl_out を渡すだけ (状態は共有しない)
            change = stage.ctrl_out.change
            reset = stage.ctrl_out.reset
        m.d.comb += self.carry.eq(change)

        return m
