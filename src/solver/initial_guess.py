"""Initial-Guess Estimator — аналитическое начальное приближение для α.

Обе оценки получены линеаризацией логарифма уравнения инварианта вокруг
актива с минимальным augmented balance (argmin L):

- Оценка 1: α₀ = ∏ (a_i/r_i)^{−w_i/w_argmin}
- Оценка 2 (диагностическая): α ≤ (Σ w_i(1/b_i − ln d_i)) / (Σ w_i/b_i)

Оценка 1 всегда нижняя граница корня: α₀ = R(1), где
R(α) = (∏b^w / ∏_{i≠argmin} (d_i·(α + c_i))^{w_i})^{1/w_argmin} / d_argmin
убывает по α, а α* = R(α*) <= 1. При малом w_argmin α₀ может лежать на
сотни порядков ниже α*, поэтому брекет [α₀, 1] сужается геометрической
бисекцией по знаку невязки до отношения границ SEED_BRACKET_RATIO.
Стартовая точка корректора (seed) — нижняя граница суженного брекета,
в обоих доменах: α = seed, Δ₀ = L·(1 − seed).
"""

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Final, Optional

from src.solver.invariant import AlphaParameters, DomainBound, domain_bound, evaluate_alpha

# Отношение верхней и нижней границ брекета, при котором бисекция прекращается.
# При α* <= 1.5·seed знаменатели шагов Halley/Householder в seed положительны.
SEED_BRACKET_RATIO: Final[Decimal] = Decimal("1.5")
MAX_SEED_BISECTIONS: Final[int] = 64


@dataclass(frozen=True)
class InitialGuess:
    """Начальное приближение в обоих доменах."""

    alpha: Decimal  # Оценка 1
    seed: Decimal  # нижняя граница суженного брекета
    delta: Decimal  # L·(1 − seed)
    alpha_bound: Decimal  # Оценка 2
    params: AlphaParameters

    @property
    def bound(self) -> DomainBound:
        return self.params.bound


def analytical_alpha(
    reserves: Sequence[Decimal],
    balances: Sequence[Decimal],
    weights: Sequence[Decimal],
    bound: Optional[DomainBound] = None,
) -> Decimal:
    """Оценка 1: α₀ = ∏ (a_i/r_i)^{−w_i/w_argmin}.

    Так как a_i >= r_i, результат лежит в (0, 1]; при нулевых депозитах α₀ = 1.
    """
    bound = bound or domain_bound(balances)
    ref_weight = weights[bound.index]

    product = Decimal(1)
    for r, a, w in zip(reserves, balances, weights):
        product *= (a / r) ** (-w / ref_weight)
    return product


def alpha_upper_bound(
    reserves: Sequence[Decimal],
    balances: Sequence[Decimal],
    weights: Sequence[Decimal],
    bound: Optional[DomainBound] = None,
) -> Decimal:
    """Оценка 2: (Σ w_i(1/b_i − ln d_i)) / (Σ w_i/b_i)."""
    bound = bound or domain_bound(balances)
    big_l = bound.value

    numerator = Decimal(0)
    denominator = Decimal(0)
    for r, a, w in zip(reserves, balances, weights):
        inv_b = big_l / a
        numerator += w * (inv_b - (a / r).ln())
        denominator += w * inv_b
    return numerator / denominator


def bracket_alpha_seed(
    alpha: Decimal,
    params: AlphaParameters,
    weights: Sequence[Decimal],
    ratio: Decimal = SEED_BRACKET_RATIO,
    max_bisections: int = MAX_SEED_BISECTIONS,
) -> Decimal:
    """
    Сужение брекета [alpha, 1] геометрической бисекцией.

    Середина √(lower·upper) заменяет lower при отрицательной невязке
    и upper иначе. Каждая бисекция вдвое сокращает ln(upper/lower).

    Args:
        alpha: Нижняя граница корня (Оценка 1)
        params: Предвычисленные величины α-формы
        weights: Веса w_i
        ratio: Целевое отношение upper/lower
        max_bisections: Предел числа бисекций

    Returns:
        Нижняя граница брекета
    """
    lower, upper = alpha, Decimal(1)
    for _ in range(max_bisections):
        if upper <= lower * ratio:
            break
        middle = (lower * upper).sqrt()
        if evaluate_alpha(middle, params, weights, order=0).residual < 0:
            lower = middle
        else:
            upper = middle
    return lower


def estimate_initial_guess(
    reserves: Sequence[Decimal],
    balances: Sequence[Decimal],
    weights: Sequence[Decimal],
) -> InitialGuess:
    """Обе оценки, стартовая точка корректора и соответствующий Δ₀."""
    params = AlphaParameters.from_balances(reserves, balances, weights)
    bound = params.bound
    alpha = analytical_alpha(reserves, balances, weights, bound)
    seed = bracket_alpha_seed(alpha, params, weights)
    return InitialGuess(
        alpha=alpha,
        seed=seed,
        delta=params.to_delta(seed),
        alpha_bound=alpha_upper_bound(reserves, balances, weights, bound),
        params=params,
    )
