"""
Invariant Evaluator — взвешенный геометрический инвариант и его производные

Модуль вычисляет:
- K = ∏ r_i^{w_i} (инвариант пула, пересчитывается на каждый вызов)
- a_i = r_i + x_i (augmented balances) и L = min_i a_i с индексом argmin
- Базовую форму f(Δ) = ∏ (a_i − Δ)^{w_i} − K и её производные до 3-го порядка
- α-репараметризацию g(α) = ∏ (d_i·(α + c_i))^{w_i} − ∏ b_i^{w_i},
  где b_i = a_i / L, d_i = a_i / r_i, Δ = (1 − α)·L

ФОРМУЛЫ (P = ∏ (a_i − Δ)^{w_i}, den_i = a_i − Δ):
    S = Σ w_i/den_i,  T = Σ w_i/den_i²,  U = Σ w_i/den_i³
    f'(Δ)   = −P·S
    f''(Δ)  =  P·(S² − T)
          = P·[Σ w_i(w_i−1)/den_i² + 2·Σ_{i<j} w_i w_j/(den_i den_j)]
    f'''(Δ) = −P·(S³ − 3ST + 2U)

    α-форма (h = ∏ (d_i·den_i)^{w_i}, den_i = α + c_i, c_i = b_i − 1):
    g'   = h·S,  g'' = h·(S² − T),  g''' = h·(S³ − 3ST + 2U)
    нормированная невязка f = 1 − ∏b^w / h (используется α-правилами шага)

Все функции работают в активном decimal контексте вызывающей стороны
(PrecisionContext.activate); точность внутри не меняется.

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Каждый den_i > 0, иначе DomainViolationError (Domain Guard должен
   гарантировать, что такая точка сюда не попадает)
2. S, T, U считаются одним проходом на итерацию
"""

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from src.solver.errors import DomainViolationError, InvalidInputError


# =============================================================================
# VALUE OBJECTS
# =============================================================================


@dataclass(frozen=True)
class DomainBound:
    """L = min_i a_i и индекс минимального augmented balance."""

    value: Decimal
    index: int


@dataclass(frozen=True)
class PowerSums:
    """Аккумуляторы S, T, U (U только если запрошен 3-й порядок)."""

    s: Decimal
    t: Decimal
    u: Optional[Decimal] = None


@dataclass(frozen=True)
class BasketEvaluation:
    """Значение базовой формы f(Δ) и запрошенные производные."""

    delta: Decimal
    value: Decimal  # f(Δ)
    product: Decimal  # P = ∏ (a_i − Δ)^{w_i}
    sums: PowerSums
    derivatives: tuple[Decimal, ...]  # (f', f'', f''') до запрошенного порядка

    @property
    def residual(self) -> Decimal:
        return self.value

    def derivative(self, n: int) -> Decimal:
        """Производная порядка n (1..3)."""
        if not 1 <= n <= len(self.derivatives):
            raise ValueError(f"derivative of order {n} was not evaluated")
        return self.derivatives[n - 1]


@dataclass(frozen=True)
class AlphaEvaluation:
    """Значение α-формы и сопутствующие величины для α-правил шага."""

    alpha: Decimal
    value: Decimal  # g(α) = h − ∏ b^w
    product: Decimal  # h = ∏ (d_i·den_i)^{w_i}
    product_ratio: Decimal  # ∏ b^w / h
    sums: PowerSums
    derivatives: tuple[Decimal, ...]  # (g', g'', g''')

    @property
    def residual(self) -> Decimal:
        """Нормированная невязка f = 1 − productRatio."""
        return 1 - self.product_ratio

    def derivative(self, n: int) -> Decimal:
        if not 1 <= n <= len(self.derivatives):
            raise ValueError(f"derivative of order {n} was not evaluated")
        return self.derivatives[n - 1]


# =============================================================================
# BASIC QUANTITIES
# =============================================================================


def compute_invariant(reserves: Sequence[Decimal], weights: Sequence[Decimal]) -> Decimal:
    """
    Инвариант пула K = ∏ r_i^{w_i}.

    Examples:
        >>> compute_invariant([Decimal(4), Decimal(9)], [Decimal("0.5"), Decimal("0.5")]) == 6
        True
    """
    if len(reserves) != len(weights):
        raise InvalidInputError(
            f"reserves and weights length mismatch: {len(reserves)} != {len(weights)}"
        )
    return weighted_product(reserves, weights)


def weighted_product(bases: Sequence[Decimal], weights: Sequence[Decimal]) -> Decimal:
    """∏ base_i^{w_i} для положительных оснований."""
    product = Decimal(1)
    for base, weight in zip(bases, weights):
        product *= base ** weight
    return product


def augmented_balances(
    reserves: Sequence[Decimal], deposits: Sequence[Decimal]
) -> tuple[Decimal, ...]:
    """a_i = r_i + x_i."""
    if len(reserves) != len(deposits):
        raise InvalidInputError(
            f"reserves and deposits length mismatch: {len(reserves)} != {len(deposits)}"
        )
    return tuple(r + x for r, x in zip(reserves, deposits))


def domain_bound(balances: Sequence[Decimal]) -> DomainBound:
    """
    L = min_i a_i и его индекс (при равенстве — наименьший индекс).

    Examples:
        >>> domain_bound([Decimal(5), Decimal(3), Decimal(3)])
        DomainBound(value=Decimal('3'), index=1)
    """
    if not balances:
        raise InvalidInputError("balances must not be empty")

    min_index = 0
    min_value = balances[0]
    for i in range(1, len(balances)):
        if balances[i] < min_value:
            min_value = balances[i]
            min_index = i
    return DomainBound(value=min_value, index=min_index)


def accumulate_power_sums(
    denominators: Sequence[Decimal],
    weights: Sequence[Decimal],
    include_cubic: bool = False,
) -> PowerSums:
    """
    Один проход по активам: S = Σ w/den, T = Σ w/den², U = Σ w/den³.
    """
    s = Decimal(0)
    t = Decimal(0)
    u = Decimal(0) if include_cubic else None
    for den, weight in zip(denominators, weights):
        inv = 1 / den
        term = weight * inv
        s += term
        term *= inv
        t += term
        if u is not None:
            u += term * inv
    return PowerSums(s=s, t=t, u=u)


def _derivative_chain(scale: Decimal, sums: PowerSums, order: int, sign: int) -> tuple[Decimal, ...]:
    """
    Производные взвешенного произведения степеней.

    Для F(z) = ∏ (c_i + sign·z)^{w_i}:
    F' = sign·F·S, F'' = F·(S² − T), F''' = sign·F·(S³ − 3ST + 2U).
    """
    s, t = sums.s, sums.t
    result: list[Decimal] = []
    if order >= 1:
        result.append(sign * scale * s)
    if order >= 2:
        result.append(scale * (s * s - t))
    if order >= 3:
        u = sums.u if sums.u is not None else Decimal(0)
        result.append(sign * scale * (s * s * s - 3 * s * t + 2 * u))
    return tuple(result)


def _check_order(order: int) -> None:
    if not 0 <= order <= 3:
        raise ValueError(f"derivative order must be in [0, 3], got {order}")


# =============================================================================
# BASIC FORM f(Δ)
# =============================================================================


def basket_residual(
    delta: Decimal,
    balances: Sequence[Decimal],
    weights: Sequence[Decimal],
    invariant: Decimal,
) -> Decimal:
    """
    f(Δ) = ∏ (a_i − Δ)^{w_i} − K.

    Raises:
        DomainViolationError: Если a_i − Δ <= 0 для какого-либо i
    """
    return evaluate_basket(delta, balances, weights, invariant, order=0).value


def evaluate_basket(
    delta: Decimal,
    balances: Sequence[Decimal],
    weights: Sequence[Decimal],
    invariant: Decimal,
    order: int = 1,
) -> BasketEvaluation:
    """
    Базовая форма f(Δ) и производные до порядка order.

    Args:
        delta: Кандидат Δ
        balances: Augmented balances a_i
        weights: Веса w_i
        invariant: K = ∏ r_i^{w_i}
        order: Максимальный порядок производной (0..3)

    Raises:
        DomainViolationError: Если a_i − Δ <= 0 для какого-либо i
    """
    _check_order(order)

    denominators = []
    for i, balance in enumerate(balances):
        den = balance - delta
        if den <= 0:
            raise DomainViolationError(
                f"a[{i}] - delta = {den} is not positive (delta={delta})",
                iterate=delta,
            )
        denominators.append(den)

    product = weighted_product(denominators, weights)
    sums = accumulate_power_sums(denominators, weights, include_cubic=order >= 3)

    return BasketEvaluation(
        delta=delta,
        value=product - invariant,
        product=product,
        sums=sums,
        derivatives=_derivative_chain(product, sums, order, sign=-1),
    )


# =============================================================================
# α-REPARAMETERIZATION g(α)
# =============================================================================


@dataclass(frozen=True)
class AlphaParameters:
    """
    Предвычисленные величины α-формы для одного вызова.

    Attributes:
        bound: L и argmin
        b: b_i = a_i / L (все >= 1, b_argmin == 1)
        c: c_i = b_i − 1, знаменатель α + c_i (c_argmin == 0 точно)
        d: d_i = a_i / r_i (все >= 1)
        product_b: ∏ b_i^{w_i}
    """

    bound: DomainBound
    b: tuple[Decimal, ...]
    c: tuple[Decimal, ...]
    d: tuple[Decimal, ...]
    product_b: Decimal

    @classmethod
    def from_balances(
        cls,
        reserves: Sequence[Decimal],
        balances: Sequence[Decimal],
        weights: Sequence[Decimal],
    ) -> "AlphaParameters":
        bound = domain_bound(balances)
        big_l = bound.value
        b = tuple(a / big_l for a in balances)
        d = tuple(a / r for a, r in zip(balances, reserves))
        return cls(
            bound=bound,
            b=b,
            c=tuple(b_i - 1 for b_i in b),
            d=d,
            product_b=weighted_product(b, weights),
        )

    def to_delta(self, alpha: Decimal) -> Decimal:
        """Δ = (1 − α)·L."""
        return (1 - alpha) * self.bound.value


def evaluate_alpha(
    alpha: Decimal,
    params: AlphaParameters,
    weights: Sequence[Decimal],
    order: int = 1,
) -> AlphaEvaluation:
    """
    α-форма g(α), нормированная невязка и производные до порядка order.

    Raises:
        DomainViolationError: Если α + c_i <= 0 для какого-либо i
    """
    _check_order(order)

    denominators = []
    # c_i вычитается заранее: для argmin знаменатель равен α без округления
    for i, c_i in enumerate(params.c):
        den = alpha + c_i
        if den <= 0:
            raise DomainViolationError(
                f"alpha + c[{i}] = {den} is not positive (alpha={alpha})",
                iterate=alpha,
            )
        denominators.append(den)

    product = weighted_product(
        [d_i * den for d_i, den in zip(params.d, denominators)], weights
    )
    sums = accumulate_power_sums(denominators, weights, include_cubic=order >= 3)

    return AlphaEvaluation(
        alpha=alpha,
        value=product - params.product_b,
        product=product,
        product_ratio=params.product_b / product,
        sums=sums,
        derivatives=_derivative_chain(product, sums, order, sign=1),
    )
