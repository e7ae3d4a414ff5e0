"""
Closed-Form Solvers — точные решения вырожденных форм без итераций

Когда неизвестен только один баланс, уравнение взвешенного произведения
сводится к прямому обращению степени:

- Single-output (N−1 входов → 1 выход):
    r_out' = (K / ∏_{i≠out} (r_i + Δ′)^{w_i})^{1/w_out}
    output = r_out − r_out'

- Two-asset constant product (N = 2, w₁ = w₂):
    (a₁ − Δ)(a₂ − Δ) = r₁·r₂
    Δ = ((a₁ + a₂) − √((a₁ − a₂)² + 4·r₁·r₂)) / 2   (меньший корень, Δ ∈ [0, L))

Функции вызываются в активном decimal контексте; engine-обёртки
(solve_single_output, solve_constant_product_basket) открывают его сами.
"""

from collections.abc import Sequence
from decimal import Decimal

from src.solver.errors import InvalidInputError
from src.solver.invariant import compute_invariant, weighted_product


def _check_output_index(output_index: int, n: int) -> None:
    if not 0 <= output_index < n:
        raise InvalidInputError(f"output_index {output_index} out of range for {n} assets")


def single_output_balance(
    reserves: Sequence[Decimal],
    weights: Sequence[Decimal],
    delta: Decimal,
    output_index: int,
) -> Decimal:
    """
    Новый баланс выходного актива после депозита Δ′ во все остальные активы.

    Args:
        reserves: Резервы r_i
        weights: Веса w_i
        delta: Общий депозит Δ′ в каждый актив, кроме output_index
        output_index: Индекс выходного актива

    Returns:
        r_out' = (K / ∏_{i≠out} (r_i + Δ′)^{w_i})^{1/w_out}
    """
    n = len(reserves)
    _check_output_index(output_index, n)

    invariant = compute_invariant(reserves, weights)
    others = [i for i in range(n) if i != output_index]
    product = weighted_product(
        [reserves[i] + delta for i in others], [weights[i] for i in others]
    )
    return (invariant / product) ** (1 / weights[output_index])


def single_output_amount(
    reserves: Sequence[Decimal],
    weights: Sequence[Decimal],
    delta: Decimal,
    output_index: int,
) -> Decimal:
    """Выход r_out − r_out'."""
    _check_output_index(output_index, len(reserves))
    return reserves[output_index] - single_output_balance(reserves, weights, delta, output_index)


def constant_product_basket(
    reserves: Sequence[Decimal],
    deposits: Sequence[Decimal],
) -> Decimal:
    """
    Basket withdrawal Δ для двух активов с равными весами.

    Examples:
        >>> constant_product_basket([Decimal(100), Decimal(100)], [Decimal(0), Decimal(0)])
        Decimal('0')
    """
    if len(reserves) != 2 or len(deposits) != 2:
        raise InvalidInputError(
            f"constant product basket needs exactly 2 assets, got {len(reserves)}"
        )

    a1 = reserves[0] + deposits[0]
    a2 = reserves[1] + deposits[1]
    spread = a1 - a2
    discriminant = spread * spread + 4 * reserves[0] * reserves[1]
    return ((a1 + a2) - discriminant.sqrt()) / 2
