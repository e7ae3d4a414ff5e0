"""Конфигурация basket solver: порядок метода, точность, толерантности."""

from dataclasses import dataclass, field, fields
from decimal import ROUND_HALF_EVEN, Decimal
from enum import Enum
from typing import Any, Mapping, Optional, Union

from src.core.math.decimal_safeguards import (
    DEFAULT_DERIVATIVE_FLOOR,
    DEFAULT_TOLERANCE,
    DEFAULT_WEIGHT_SUM_TOLERANCE,
    to_decimal,
)
from src.core.math.precision import DEFAULT_PRECISION_DIGITS, PrecisionContext
from src.solver.errors import InvalidInputError


class IterateDomain(str, Enum):
    """Домен, в котором живёт итерат."""

    ALPHA = "alpha"
    DELTA = "delta"


class SolverOrder(str, Enum):
    """Правило коррекции итерата.

    - NEWTON: порядок 1, α-домен
    - HALLEY: порядок 2, α-домен
    - HOUSEHOLDER: порядок 3, α-домен
    - CHEBYSHEV: порядок 3, Δ-домен (базовая форма инварианта)
    - NEWTON_DELTA: порядок 1, Δ-домен (f/f' по базовой форме)
    """

    NEWTON = "newton"
    HALLEY = "halley"
    HOUSEHOLDER = "householder"
    CHEBYSHEV = "chebyshev"
    NEWTON_DELTA = "newton_delta"

    @classmethod
    def parse(cls, value: Union["SolverOrder", int, str]) -> "SolverOrder":
        """Приведение 1/2/3/"chebyshev" (и имён правил) к SolverOrder.

        Raises:
            InvalidInputError: неизвестный порядок
        """
        if isinstance(value, SolverOrder):
            return value
        if isinstance(value, bool):
            raise InvalidInputError(f"Unknown solver order: {value!r}")
        if isinstance(value, int):
            key = str(value)
        elif isinstance(value, str):
            key = value.strip().lower()
        else:
            raise InvalidInputError(f"Unknown solver order: {value!r}")

        if key in _ORDER_ALIASES:
            return _ORDER_ALIASES[key]
        raise InvalidInputError(f"Unknown solver order: {value!r}")


_ORDER_ALIASES = {
    "1": SolverOrder.NEWTON,
    "2": SolverOrder.HALLEY,
    "3": SolverOrder.HOUSEHOLDER,
    "newton": SolverOrder.NEWTON,
    "halley": SolverOrder.HALLEY,
    "householder": SolverOrder.HOUSEHOLDER,
    "chebyshev": SolverOrder.CHEBYSHEV,
    "newton_delta": SolverOrder.NEWTON_DELTA,
    "newton-delta": SolverOrder.NEWTON_DELTA,
}


@dataclass(frozen=True)
class SolverConfig:
    """Конфигурация одного вызова solve.

    tolerance — порог |step| в домене итерата (α или Δ).
    residual_tolerance — порог |f|; None означает "равен tolerance".
    Любой из двух порогов достаточен для остановки.
    """

    precision_digits: int = DEFAULT_PRECISION_DIGITS
    rounding: str = ROUND_HALF_EVEN
    tolerance: Decimal = DEFAULT_TOLERANCE
    residual_tolerance: Optional[Decimal] = None
    max_iterations: int = 100
    order: SolverOrder = SolverOrder.NEWTON
    derivative_floor: Decimal = DEFAULT_DERIVATIVE_FLOOR
    validate_weight_sum: bool = False
    weight_sum_tolerance: Decimal = DEFAULT_WEIGHT_SUM_TOLERANCE

    # Вычисляется в __post_init__
    precision: PrecisionContext = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        try:
            precision = PrecisionContext(digits=self.precision_digits, rounding=self.rounding)
            tolerance = to_decimal(self.tolerance, "tolerance")
            residual_tolerance = (
                tolerance
                if self.residual_tolerance is None
                else to_decimal(self.residual_tolerance, "residual_tolerance")
            )
            derivative_floor = to_decimal(self.derivative_floor, "derivative_floor")
            weight_sum_tolerance = to_decimal(self.weight_sum_tolerance, "weight_sum_tolerance")
        except ValueError as e:
            raise InvalidInputError(str(e)) from e

        if tolerance <= 0:
            raise InvalidInputError(f"tolerance must be positive, got {tolerance}")
        if residual_tolerance <= 0:
            raise InvalidInputError(
                f"residual_tolerance must be positive, got {residual_tolerance}"
            )
        if derivative_floor < 0:
            raise InvalidInputError(
                f"derivative_floor must be non-negative, got {derivative_floor}"
            )
        if weight_sum_tolerance < 0:
            raise InvalidInputError(
                f"weight_sum_tolerance must be non-negative, got {weight_sum_tolerance}"
            )
        if isinstance(self.max_iterations, bool) or not isinstance(self.max_iterations, int):
            raise InvalidInputError(f"max_iterations must be an int, got {self.max_iterations!r}")
        if self.max_iterations < 1:
            raise InvalidInputError(f"max_iterations must be >= 1, got {self.max_iterations}")

        object.__setattr__(self, "precision", precision)
        object.__setattr__(self, "tolerance", tolerance)
        object.__setattr__(self, "residual_tolerance", residual_tolerance)
        object.__setattr__(self, "derivative_floor", derivative_floor)
        object.__setattr__(self, "weight_sum_tolerance", weight_sum_tolerance)
        object.__setattr__(self, "order", SolverOrder.parse(self.order))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "SolverConfig":
        """Конфигурация из JSON-подобного словаря.

        Raises:
            InvalidInputError: неизвестные ключи или некорректные значения
        """
        allowed = {f.name for f in fields(cls) if f.init}
        unknown = set(data) - allowed
        if unknown:
            raise InvalidInputError(f"Unknown config keys: {sorted(unknown)}")
        return cls(**dict(data))
