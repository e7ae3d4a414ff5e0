"""
Decimal Safeguards — безопасные примитивы для Decimal арифметики

Модуль обеспечивает численную корректность всех Decimal операций solver:
- Приведение входов (int/str/float/Decimal) к Decimal без двоичных артефактов
- Проверка конечности (NaN/Infinity никогда не пропагируют)
- Пороговые проверки для делителей и производных
- Валидация положительности/неотрицательности
- Форматирование в fixed/exponential представление

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. float конвертируется через repr: Decimal(repr(0.4)) == Decimal("0.4")
2. NaN/Infinity на входе отвергаются ValueError
3. Все функции детерминированы и зависят только от активного decimal контекста
"""

import math
from collections.abc import Iterable
from decimal import Decimal, InvalidOperation
from typing import Final

# =============================================================================
# EPSILON-ПАРАМЕТРЫ
# =============================================================================

# Шаговая толерантность по умолчанию (в домене итерата)
DEFAULT_TOLERANCE: Final[Decimal] = Decimal("1e-50")

# Нижний порог модуля производной / знаменателя шага
DEFAULT_DERIVATIVE_FLOOR: Final[Decimal] = Decimal("1e-80")

# Толерантность проверки Σ w_i = 1
DEFAULT_WEIGHT_SUM_TOLERANCE: Final[Decimal] = Decimal("1e-12")

DecimalLike = Decimal | int | str | float


# =============================================================================
# ПРИВЕДЕНИЕ ТИПОВ
# =============================================================================


def to_decimal(value: DecimalLike, name: str = "value") -> Decimal:
    """
    Приведение значения к конечному Decimal.

    Args:
        value: Decimal, int, str или float
        name: Имя параметра (для сообщения об ошибке)

    Returns:
        Конечный Decimal

    Raises:
        ValueError: Если значение не число, NaN/Inf или bool

    Examples:
        >>> to_decimal(0.4)
        Decimal('0.4')
        >>> to_decimal("1e-3")
        Decimal('0.001')
        >>> to_decimal(7)
        Decimal('7')
    """
    if isinstance(value, bool):
        raise ValueError(f"{name} must be numeric, got bool {value!r}")

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"{name} must be finite (not NaN/Inf), got {value}")
        # repr даёт кратчайшее представление, двоичное расширение не нужно
        result = Decimal(repr(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            raise ValueError(f"{name} is not a decimal literal: {value!r}") from None
    else:
        raise ValueError(f"{name} must be Decimal/int/str/float, got {type(value).__name__}")

    if not result.is_finite():
        raise ValueError(f"{name} must be finite (not NaN/Inf), got {result}")

    return result


def to_decimal_tuple(values: Iterable[DecimalLike], name: str = "values") -> tuple[Decimal, ...]:
    """Поэлементное приведение последовательности к tuple[Decimal, ...]."""
    if isinstance(values, (str, bytes)):
        raise ValueError(f"{name} must be a sequence of numbers, got a string")
    return tuple(to_decimal(v, f"{name}[{i}]") for i, v in enumerate(values))


# =============================================================================
# КОНЕЧНОСТЬ И ПОРОГИ
# =============================================================================


def is_finite_decimal(value: Decimal) -> bool:
    """True если value конечный Decimal (не NaN, не Infinity)."""
    return isinstance(value, Decimal) and value.is_finite()


def is_below_floor(value: Decimal, floor: Decimal) -> bool:
    """
    Проверка, что |value| строго меньше порога.

    Используется для детекции исчезающих производных/знаменателей.

    Examples:
        >>> is_below_floor(Decimal("1e-90"), Decimal("1e-80"))
        True
        >>> is_below_floor(Decimal("-0.5"), Decimal("1e-80"))
        False
    """
    return abs(value) < floor


def midpoint(a: Decimal, b: Decimal) -> Decimal:
    """Середина отрезка [a, b] в активном контексте."""
    return (a + b) / 2


# =============================================================================
# ВАЛИДАЦИЯ
# =============================================================================


def validate_finite(value: Decimal, name: str) -> Decimal:
    """
    Валидация конечности Decimal.

    Raises:
        ValueError: Если value NaN/Infinity
    """
    if not is_finite_decimal(value):
        raise ValueError(f"{name} must be a finite Decimal (not NaN/Inf), got {value}")
    return value


def validate_positive(value: Decimal, name: str) -> None:
    """
    Валидация, что значение строго положительное.

    Raises:
        ValueError: Если value <= 0 или NaN/Inf
    """
    validate_finite(value, name)

    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")


def validate_non_negative(value: Decimal, name: str) -> None:
    """
    Валидация, что значение неотрицательное.

    Raises:
        ValueError: Если value < 0 или NaN/Inf
    """
    validate_finite(value, name)

    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")


# =============================================================================
# ФОРМАТИРОВАНИЕ
# =============================================================================


def format_fixed(value: Decimal, places: int = 18) -> str:
    """
    Fixed-point представление с заданным числом знаков после запятой.

    Examples:
        >>> format_fixed(Decimal("1.5"), 3)
        '1.500'
    """
    if places < 0:
        raise ValueError(f"places must be non-negative, got {places}")
    return format(value, f".{places}f")


def format_exponential(value: Decimal, digits: int = 10) -> str:
    """
    Экспоненциальное представление с заданным числом цифр мантиссы.

    Examples:
        >>> format_exponential(Decimal("12345"), 2)
        '1.23e+4'
    """
    if digits < 0:
        raise ValueError(f"digits must be non-negative, got {digits}")
    return format(value, f".{digits}e")
