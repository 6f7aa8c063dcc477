import argparse
import enum
import logging

from amaranth import Shape
from pydantic.dataclasses import dataclass


class ConfigurationError(Exception):
    """
    Raised when a CounterConfig violates one of its invariants.
    Attributes:
        invariant (int): The 1-based number of the violated invariant.
    """

    def __init__(self, invariant: int, message: str):
        self.invariant = invariant
        super().__init__(f"invariant {invariant} violated: {message}")


class LogicDefect(Exception):
    """
    A CtrlLoc/CountType combination reached logic that validate() should have excluded.
    """


@enum.unique
class CtrlLoc(enum.Enum):
    """
    Where a control condition (wrap/change) is decided
    """

    # 外部入力から受け取る
    EXTERNAL = "external"
    # Counterの種類から内部で決定する
    INTERNAL = "internal"
    TIE_FALSE = "tie_false"
    TIE_TRUE = "tie_true"


@enum.unique
class CountType(enum.Enum):
    """
    Direction and semantics of counting
    """

    UP = "up"
    DOWN = "down"
    UP_DOWN = "up_down"
    # modulo N up-counter (N is supplied every cycle)
    UP_MOD = "up_mod"


@dataclass(frozen=True)
class CounterConfig:
    """
    CounterConfig is the elaboration-time configuration of a counter.
    Attributes:
        count_max (int): Inclusive upper bound of the count value.
        inc_max (int): Upper bound of the per-step increment. 1 means no increment input.
        reset_val (int): Value loaded on reset.
        wrap_ctrl (CtrlLoc): Where the "wrap now" decision comes from.
        change_ctrl (CtrlLoc): Where the "update now" decision comes from.
        count_type (CountType): Counting direction.
        custom_wrap (bool): Whether a wrap_to input replaces the type-derived wrap target.
        input_delay (int): Accumulated delay of the inputs (bookkeeping only).
    """

    count_max: int
    inc_max: int = 1
    reset_val: int = 0
    wrap_ctrl: CtrlLoc = CtrlLoc.INTERNAL
    change_ctrl: CtrlLoc = CtrlLoc.TIE_TRUE
    count_type: CountType = CountType.UP
    custom_wrap: bool = False
    input_delay: int = 0

    def __post_init__(self):
        validate(self)

    @property
    def width(self) -> int:
        """
        Bit width of the count register
        """
        return Shape.cast(range(self.count_max + 1)).width

    @property
    def has_up_down(self) -> bool:
        return self.count_type == CountType.UP_DOWN

    @property
    def has_inc(self) -> bool:
        return self.inc_max != 1

    @property
    def has_wrap_to(self) -> bool:
        return self.custom_wrap

    @property
    def has_max(self) -> bool:
        return self.wrap_ctrl == CtrlLoc.INTERNAL and self.count_type != CountType.UP_MOD

    @property
    def has_mod_n(self) -> bool:
        return self.count_type == CountType.UP_MOD

    @property
    def has_wrap_in(self) -> bool:
        return self.wrap_ctrl == CtrlLoc.EXTERNAL

    @property
    def has_change_in(self) -> bool:
        return self.change_ctrl == CtrlLoc.EXTERNAL

    @property
    def is_chainable(self) -> bool:
        """
        True if ctrl_in.change/ctrl_in.reset are the only inputs the counter requires
        """
        return self.has_change_in and not (
            self.has_wrap_in or self.has_wrap_to or self.has_mod_n or self.has_up_down
        )

    @property
    def output_delay(self) -> int:
        # out is the register itself, no extra stage
        return self.input_delay

    def describe(self) -> str:
        return (
            f"{self.count_type.value} counter "
            f"[0, {self.count_max}] "
            f"inc_max={self.inc_max} "
            f"reset_val={self.reset_val} "
            f"wrap={self.wrap_ctrl.value}{'+custom' if self.custom_wrap else ''} "
            f"change={self.change_ctrl.value}"
        )

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "CounterConfig":
        return cls(
            count_max=args.count_max,
            inc_max=args.inc_max,
            reset_val=args.reset_val,
            wrap_ctrl=CtrlLoc(args.wrap_ctrl),
            change_ctrl=CtrlLoc(args.change_ctrl),
            count_type=CountType(args.count_type),
            custom_wrap=args.custom_wrap,
            input_delay=args.input_delay,
        )

    @staticmethod
    def setup_parser(parser: argparse.ArgumentParser) -> argparse.ArgumentParser:
        """
        Add the counter options to the parser
        """
        parser.add_argument("--count-max", type=int, default=15, help="Max count value")
        parser.add_argument("--inc-max", type=int, default=1, help="Max increment")
        parser.add_argument("--reset-val", type=int, default=0, help="Reset value")
        parser.add_argument(
            "--wrap-ctrl",
            default=CtrlLoc.INTERNAL.value,
            choices=[x.value for x in CtrlLoc],
            help="Source of the wrap condition",
        )
        parser.add_argument(
            "--change-ctrl",
            default=CtrlLoc.TIE_TRUE.value,
            choices=[x.value for x in CtrlLoc],
            help="Source of the change condition",
        )
        parser.add_argument(
            "--count-type",
            default=CountType.UP.value,
            choices=[x.value for x in CountType],
            help="Counting direction",
        )
        parser.add_argument(
            "--custom-wrap", action="store_true", help="Add a wrap_to input"
        )
        parser.add_argument(
            "--input-delay", type=int, default=0, help="Delay of the inputs"
        )
        return parser


def validate(config: CounterConfig) -> CounterConfig:
    """
    Check the invariants of a counter configuration in order, failing on the first violation.

    Args:
        config: The configuration to check.

    Returns:
        CounterConfig: The same configuration.

    Raises:
        ConfigurationError: If an invariant is violated.
    """
    if config.input_delay < 0:
        raise ConfigurationError(
            1, f"input_delay must be >= 0, but input_delay={config.input_delay}"
        )
    if config.count_max < 0:
        raise ConfigurationError(
            2, f"count_max must be >= 0, but count_max={config.count_max}"
        )
    if not (0 <= config.reset_val <= config.count_max):
        raise ConfigurationError(
            3,
            f"reset_val must be in [0, count_max], but reset_val={config.reset_val}, count_max={config.count_max}",
        )
    if not (0 < config.inc_max <= config.count_max):
        raise ConfigurationError(
            4,
            f"inc_max must be in (0, count_max], but inc_max={config.inc_max}, count_max={config.count_max}",
        )
    if config.wrap_ctrl == CtrlLoc.TIE_TRUE:
        # 常にwrapするとcountがwrap_toに固定される
        raise ConfigurationError(5, "wrap_ctrl must not be tie_true")
    if config.change_ctrl not in (CtrlLoc.EXTERNAL, CtrlLoc.TIE_TRUE):
        raise ConfigurationError(
            6,
            f"change_ctrl must be external or tie_true, but change_ctrl={config.change_ctrl.value}",
        )
    if config.count_type in (CountType.UP_DOWN, CountType.DOWN) and config.inc_max > 1:
        if not (config.custom_wrap and config.wrap_ctrl == CtrlLoc.INTERNAL):
            raise ConfigurationError(
                7,
                f"{config.count_type.value} counter with inc_max={config.inc_max} requires custom_wrap and internal wrap_ctrl",
            )
    if (
        config.count_type == CountType.UP
        and config.inc_max > 1
        and config.wrap_ctrl == CtrlLoc.EXTERNAL
        and not config.custom_wrap
    ):
        raise ConfigurationError(
            8,
            f"up counter with inc_max={config.inc_max} and external wrap_ctrl requires custom_wrap",
        )

    logging.debug(f"Validated counter config: {config.describe()}")
    return config


#####################################################
# Presets

PRESETS = {
    "up": CounterConfig(count_max=15),
    "up_down": CounterConfig(count_max=15, count_type=CountType.UP_DOWN),
    "up_mod": CounterConfig(count_max=15, inc_max=4, count_type=CountType.UP_MOD),
    "up_step": CounterConfig(count_max=15, inc_max=3),
    "down_custom": CounterConfig(
        count_max=15, inc_max=2, count_type=CountType.DOWN, custom_wrap=True
    ),
    "chain_stage": CounterConfig(count_max=9, change_ctrl=CtrlLoc.EXTERNAL),
}
