"""
Precision Context — явный контекст десятичной точности

Модуль задаёт значение точности (число значащих цифр + режим округления),
которое передаётся в каждый вызов solver явно. Глобальный getcontext()
не изменяется никогда: контекст применяется через decimal.localcontext,
который thread-local и ограничен одним вызовом.

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Точность фиксируется один раз до любой арифметики и не меняется до конца solve
2. Traps InvalidOperation / DivisionByZero / Overflow всегда включены
   (NaN/Infinity не появляются молча)
3. Параллельные вызовы с разной точностью не влияют друг на друга
"""

from contextlib import AbstractContextManager
from dataclasses import dataclass
from decimal import (
    ROUND_05UP,
    ROUND_CEILING,
    ROUND_DOWN,
    ROUND_FLOOR,
    ROUND_HALF_DOWN,
    ROUND_HALF_EVEN,
    ROUND_HALF_UP,
    ROUND_UP,
    Context,
    DivisionByZero,
    InvalidOperation,
    Overflow,
    localcontext,
)
from typing import Final

# =============================================================================
# CONSTANTS
# =============================================================================

# Точность по умолчанию (значащих цифр)
DEFAULT_PRECISION_DIGITS: Final[int] = 100

# Минимально осмысленная точность для итеративного solver
MIN_PRECISION_DIGITS: Final[int] = 2

VALID_ROUNDING_MODES: Final[frozenset[str]] = frozenset(
    {
        ROUND_05UP,
        ROUND_CEILING,
        ROUND_DOWN,
        ROUND_FLOOR,
        ROUND_HALF_DOWN,
        ROUND_HALF_EVEN,
        ROUND_HALF_UP,
        ROUND_UP,
    }
)

# Сигналы, которые должны прерывать вычисление, а не давать NaN/Infinity
TRAPPED_SIGNALS: Final[tuple[type, ...]] = (InvalidOperation, DivisionByZero, Overflow)


# =============================================================================
# PRECISION CONTEXT
# =============================================================================


@dataclass(frozen=True)
class PrecisionContext:
    """
    Неизменяемое описание точности для одного вызова.

    Attributes:
        digits: Число значащих цифр
        rounding: Режим округления (константа из модуля decimal)

    Examples:
        >>> ctx = PrecisionContext(digits=50)
        >>> with ctx.activate():
        ...     value = Decimal(1) / Decimal(3)
        >>> len(str(value)) - 2
        50
    """

    digits: int = DEFAULT_PRECISION_DIGITS
    rounding: str = ROUND_HALF_EVEN

    def __post_init__(self) -> None:
        if isinstance(self.digits, bool) or not isinstance(self.digits, int):
            raise ValueError(f"digits must be an int, got {self.digits!r}")
        if self.digits < MIN_PRECISION_DIGITS:
            raise ValueError(
                f"digits must be >= {MIN_PRECISION_DIGITS}, got {self.digits}"
            )
        if self.rounding not in VALID_ROUNDING_MODES:
            raise ValueError(f"Unknown rounding mode: {self.rounding!r}")

    def to_context(self) -> Context:
        """Новый decimal.Context с включёнными traps."""
        return Context(
            prec=self.digits,
            rounding=self.rounding,
            traps=list(TRAPPED_SIGNALS),
        )

    def activate(self) -> AbstractContextManager[Context]:
        """
        Context manager, применяющий точность в пределах блока.

        Использует decimal.localcontext: изменение видно только текущему
        потоку и только внутри with-блока.
        """
        return localcontext(self.to_context())
