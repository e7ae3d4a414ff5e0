"""
Domain Guard — удержание итератов в допустимом интервале

Каждая предложенная точка проверяется ДО того, как по ней считаются
производные следующей итерации:
- α-домен: (0, 1]. α > 0 даёт den_i = α + c_i >= α > 0 (так как c_i = b_i − 1 >= 0),
  α <= 1 даёт Δ >= 0
- Δ-домен: [0, L)

Политика отката одна для всех правил шага: точка вне домена заменяется
серединой между текущим итератом и нарушенной границей (бисекция).
Если и середина недопустима (текущий итерат совпал с границей или
точности не хватает, чтобы их разделить) → DomainViolationError.
Начальное приближение проходит ту же политику: за текущий итерат
принимается включённый конец домена (0 для Δ, 1 для α).
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from src.core.math.decimal_safeguards import is_finite_decimal, midpoint
from src.solver.errors import DomainViolationError, InvalidInputError, NonFiniteValueError


@dataclass(frozen=True)
class GuardDecision:
    """Результат проверки предложенной точки."""

    value: Decimal
    clamped: bool
    violated_bound: Optional[str] = None  # "lower" | "upper"


class DomainGuard:
    """Интервал с настраиваемой включённостью концов и бисекционным откатом."""

    def __init__(
        self,
        lower: Decimal,
        upper: Decimal,
        *,
        lower_inclusive: bool = False,
        upper_inclusive: bool = False,
    ):
        if lower >= upper:
            raise InvalidInputError(f"Empty domain: lower={lower} >= upper={upper}")
        self.lower = lower
        self.upper = upper
        self.lower_inclusive = lower_inclusive
        self.upper_inclusive = upper_inclusive

    @classmethod
    def alpha_domain(cls) -> "DomainGuard":
        """α ∈ (0, 1]."""
        return cls(Decimal(0), Decimal(1), lower_inclusive=False, upper_inclusive=True)

    @classmethod
    def delta_domain(cls, bound: Decimal) -> "DomainGuard":
        """Δ ∈ [0, L)."""
        return cls(Decimal(0), bound, lower_inclusive=True, upper_inclusive=False)

    def __repr__(self) -> str:
        left = "[" if self.lower_inclusive else "("
        right = "]" if self.upper_inclusive else ")"
        return f"DomainGuard({left}{self.lower}, {self.upper}{right})"

    def _below(self, value: Decimal) -> bool:
        return value < self.lower or (value == self.lower and not self.lower_inclusive)

    def _above(self, value: Decimal) -> bool:
        return value > self.upper or (value == self.upper and not self.upper_inclusive)

    def contains(self, value: Decimal) -> bool:
        return not self._below(value) and not self._above(value)

    @property
    def anchor(self) -> Decimal:
        """Опорная точка для коррекции начального приближения: включённый конец."""
        if self.lower_inclusive:
            return self.lower
        if self.upper_inclusive:
            return self.upper
        return midpoint(self.lower, self.upper)

    def admit_initial(self, value: Decimal) -> GuardDecision:
        """
        Начальное приближение вне домена корректируется той же бисекцией,
        что и шаг: от опорной точки к нарушенной границе.

        Raises:
            InvalidInputError: Если начальная точка не конечна
        """
        if not is_finite_decimal(value):
            raise InvalidInputError(f"Initial guess is not finite: {value}", iterate=value)
        return self.admit(self.anchor, value)

    def admit(self, current: Decimal, proposed: Decimal) -> GuardDecision:
        """
        Принять предложенную точку или заменить её бисекцией.

        Args:
            current: Текущий (допустимый) итерат
            proposed: Точка после сырого шага

        Returns:
            GuardDecision с допустимой точкой

        Raises:
            NonFiniteValueError: Если proposed NaN/Infinity
            DomainViolationError: Если бисекция не даёт допустимой точки
        """
        if not is_finite_decimal(proposed):
            raise NonFiniteValueError(
                f"Proposed iterate is not finite: {proposed}", iterate=current
            )

        if self.contains(proposed):
            return GuardDecision(value=proposed, clamped=False)

        if self._below(proposed):
            boundary, side = self.lower, "lower"
        else:
            boundary, side = self.upper, "upper"

        fallback = midpoint(current, boundary)
        if not self.contains(fallback):
            raise DomainViolationError(
                f"Bisection toward {side} bound {boundary} from {current} "
                f"left the domain {self!r}",
                iterate=current,
            )
        return GuardDecision(value=fallback, clamped=True, violated_bound=side)
