"""
Core math modules для basket solver

Decimal примитивы и явный контекст точности.
"""

# Precision Context
from src.core.math.precision import (
    DEFAULT_PRECISION_DIGITS,
    MIN_PRECISION_DIGITS,
    TRAPPED_SIGNALS,
    VALID_ROUNDING_MODES,
    PrecisionContext,
)

# Decimal Safeguards
from src.core.math.decimal_safeguards import (
    # Epsilon constants
    DEFAULT_DERIVATIVE_FLOOR,
    DEFAULT_TOLERANCE,
    DEFAULT_WEIGHT_SUM_TOLERANCE,
    # Coercion
    DecimalLike,
    to_decimal,
    to_decimal_tuple,
    # Finiteness and floors
    is_below_floor,
    is_finite_decimal,
    midpoint,
    # Validation
    validate_finite,
    validate_non_negative,
    validate_positive,
    # Formatting
    format_exponential,
    format_fixed,
)

__all__ = [
    # Precision Context
    "DEFAULT_PRECISION_DIGITS",
    "MIN_PRECISION_DIGITS",
    "TRAPPED_SIGNALS",
    "VALID_ROUNDING_MODES",
    "PrecisionContext",
    # Decimal Safeguards — Epsilon constants
    "DEFAULT_DERIVATIVE_FLOOR",
    "DEFAULT_TOLERANCE",
    "DEFAULT_WEIGHT_SUM_TOLERANCE",
    # Decimal Safeguards — Coercion
    "DecimalLike",
    "to_decimal",
    "to_decimal_tuple",
    # Decimal Safeguards — Finiteness and floors
    "is_below_floor",
    "is_finite_decimal",
    "midpoint",
    # Decimal Safeguards — Validation
    "validate_finite",
    "validate_non_negative",
    "validate_positive",
    # Decimal Safeguards — Formatting
    "format_exponential",
    "format_fixed",
]
