"""
Step Rules — подключаемые формулы шага итеративного корректора

Все правила получают уже вычисленную оценку (один проход аккумуляторов
S, T, U на итерацию) и возвращают шаг: next = current − step.

α-домен (f — нормированная невязка 1 − productRatio):
    NEWTON:      step = f / S
    HALLEY:      step = 2fS / (2(1−f)S² + f(S²+T))
    HOUSEHOLDER: step = (f / ((1−f)S)) / bracket,
                 bracket = 1 + f(S²+T)/(2(1−f)S²) + f²(S³+3ST+2U)/(6(1−f)²S³)

Δ-домен (f — базовая форма, f', f'' — её производные):
    NEWTON_DELTA: step = f/f'
    CHEBYSHEV:    step = f/f' + f²·f''/(2·f'³)

Делители проверяются против derivative_floor: при |делитель| < floor
поднимается VanishingDerivativeError.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Callable

from src.core.math.decimal_safeguards import is_below_floor
from src.solver.config import IterateDomain, SolverOrder
from src.solver.errors import VanishingDerivativeError
from src.solver.invariant import AlphaEvaluation, BasketEvaluation


def _require_magnitude(value: Decimal, floor: Decimal, name: str) -> Decimal:
    if is_below_floor(value, floor):
        raise VanishingDerivativeError(f"|{name}| = {abs(value)} is below floor {floor}")
    return value


# =============================================================================
# α-DOMAIN RULES
# =============================================================================


def newton_alpha_step(evaluation: AlphaEvaluation, floor: Decimal) -> Decimal:
    f = evaluation.residual
    s = _require_magnitude(evaluation.sums.s, floor, "S")
    return f / s


def halley_alpha_step(evaluation: AlphaEvaluation, floor: Decimal) -> Decimal:
    f = evaluation.residual
    s = _require_magnitude(evaluation.sums.s, floor, "S")
    t = evaluation.sums.t
    s2 = s * s

    denominator = 2 * (1 - f) * s2 + f * (s2 + t)
    _require_magnitude(denominator, floor, "Halley denominator")
    return 2 * f * s / denominator


def householder_alpha_step(evaluation: AlphaEvaluation, floor: Decimal) -> Decimal:
    f = evaluation.residual
    s = _require_magnitude(evaluation.sums.s, floor, "S")
    t = evaluation.sums.t
    u = evaluation.sums.u
    if u is None:
        raise ValueError("Householder step requires the cubic power sum U")

    one_minus_f = 1 - f
    _require_magnitude(one_minus_f * s, floor, "(1-f)S")
    s2 = s * s
    s3 = s2 * s

    bracket = (
        1
        + f * (s2 + t) / (2 * one_minus_f * s2)
        + f * f * (s3 + 3 * s * t + 2 * u) / (6 * one_minus_f * one_minus_f * s3)
    )
    _require_magnitude(bracket, floor, "Householder bracket")
    return (f / (one_minus_f * s)) / bracket


# =============================================================================
# Δ-DOMAIN RULES
# =============================================================================


def newton_delta_step(evaluation: BasketEvaluation, floor: Decimal) -> Decimal:
    f1 = _require_magnitude(evaluation.derivative(1), floor, "f'")
    return evaluation.value / f1


def chebyshev_delta_step(evaluation: BasketEvaluation, floor: Decimal) -> Decimal:
    f = evaluation.value
    f1 = _require_magnitude(evaluation.derivative(1), floor, "f'")
    f2 = evaluation.derivative(2)
    return f / f1 + (f * f * f2) / (2 * f1 * f1 * f1)


# =============================================================================
# REGISTRY
# =============================================================================


@dataclass(frozen=True)
class StepRule:
    """Формула шага и то, что ей нужно от Invariant Evaluator."""

    order: SolverOrder
    domain: IterateDomain
    derivative_order: int  # сколько аккумуляторов/производных считать
    compute: Callable[..., Decimal]


STEP_RULES: dict[SolverOrder, StepRule] = {
    SolverOrder.NEWTON: StepRule(SolverOrder.NEWTON, IterateDomain.ALPHA, 1, newton_alpha_step),
    SolverOrder.HALLEY: StepRule(SolverOrder.HALLEY, IterateDomain.ALPHA, 2, halley_alpha_step),
    SolverOrder.HOUSEHOLDER: StepRule(
        SolverOrder.HOUSEHOLDER, IterateDomain.ALPHA, 3, householder_alpha_step
    ),
    SolverOrder.CHEBYSHEV: StepRule(
        SolverOrder.CHEBYSHEV, IterateDomain.DELTA, 2, chebyshev_delta_step
    ),
    SolverOrder.NEWTON_DELTA: StepRule(
        SolverOrder.NEWTON_DELTA, IterateDomain.DELTA, 1, newton_delta_step
    ),
}
