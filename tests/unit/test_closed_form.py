"""
Тесты для Closed-Form Solvers

Проверяет:
1. Single-output: положительный выход меньше резерва, обратный пересчёт K
2. Two-asset constant product: (a₁ − Δ)(a₂ − Δ) = r₁·r₂ и Δ ∈ [0, L)
3. Валидацию входа
"""

from decimal import Decimal

import pytest

from src.core.math.precision import PrecisionContext
from src.solver import (
    InvalidInputError,
    solve_constant_product_basket,
    solve_single_output,
)
from src.solver.closed_form import (
    constant_product_basket,
    single_output_amount,
    single_output_balance,
)
from src.solver.invariant import compute_invariant, weighted_product

RESERVES = [Decimal(1000), Decimal(2000), Decimal(3000)]
WEIGHTS = [Decimal("0.5"), Decimal("0.3"), Decimal("0.2")]


# =============================================================================
# SINGLE OUTPUT
# =============================================================================


class TestSingleOutput:
    """Выход одного актива после депозита Δ′ в остальные"""

    def test_output_positive_and_bounded(self) -> None:
        output = solve_single_output(RESERVES, WEIGHTS, Decimal(60), 0)
        assert 0 < output < RESERVES[0]

    def test_round_trip_reproduces_invariant(self) -> None:
        """Новый баланс + депозиты восстанавливают K"""
        with PrecisionContext(digits=100).activate():
            new_balance = single_output_balance(RESERVES, WEIGHTS, Decimal(60), 0)
            balances = [new_balance, RESERVES[1] + 60, RESERVES[2] + 60]
            k_before = compute_invariant(RESERVES, WEIGHTS)
            k_after = weighted_product(balances, WEIGHTS)
        assert abs(k_after - k_before) < Decimal("1e-90") * k_before

    def test_zero_delta_gives_zero_output(self) -> None:
        output = solve_single_output(RESERVES, WEIGHTS, 0, 2)
        assert abs(output) < Decimal("1e-90")

    def test_larger_delta_larger_output(self) -> None:
        small = solve_single_output(RESERVES, WEIGHTS, 10, 1)
        large = solve_single_output(RESERVES, WEIGHTS, 100, 1)
        assert 0 < small < large < RESERVES[1]

    def test_accepts_strings_and_int_precision(self) -> None:
        output = solve_single_output(["1000", "2000", "3000"], ["0.5", "0.3", "0.2"], "60", 0, 40)
        reference = solve_single_output(RESERVES, WEIGHTS, Decimal(60), 0)
        assert abs(output - reference) < Decimal("1e-30")

    def test_precision_context_respected(self) -> None:
        output = solve_single_output(RESERVES, WEIGHTS, 60, 0, PrecisionContext(digits=20))
        assert len(output.as_tuple().digits) <= 20

    @pytest.mark.parametrize("index", [-1, 3])
    def test_output_index_out_of_range(self, index: int) -> None:
        with pytest.raises(InvalidInputError, match="output_index"):
            solve_single_output(RESERVES, WEIGHTS, 60, index)

    @pytest.mark.parametrize("index", [-1, 3, 4])
    def test_raw_amount_checks_index_before_lookup(self, index: int) -> None:
        """Индекс за пределами пула даёт InvalidInputError, а не IndexError"""
        with PrecisionContext(digits=40).activate():
            with pytest.raises(InvalidInputError, match="out of range for 3 assets"):
                single_output_amount(RESERVES, WEIGHTS, Decimal(60), index)

    def test_negative_delta(self) -> None:
        with pytest.raises(InvalidInputError, match="non-negative"):
            solve_single_output(RESERVES, WEIGHTS, -1, 0)

    def test_invalid_pool(self) -> None:
        with pytest.raises(InvalidInputError):
            solve_single_output([1000, 0, 3000], WEIGHTS, 60, 0)
        with pytest.raises(InvalidInputError):
            solve_single_output(RESERVES, WEIGHTS[:2], 60, 0)

    def test_invalid_precision(self) -> None:
        with pytest.raises(InvalidInputError, match="digits"):
            solve_single_output(RESERVES, WEIGHTS, 60, 0, 1)


# =============================================================================
# TWO-ASSET CONSTANT PRODUCT
# =============================================================================


class TestConstantProductBasket:
    """N = 2, w₁ = w₂"""

    def test_satisfies_invariant(self) -> None:
        reserves = [Decimal(1000), Decimal(4000)]
        deposits = [Decimal(100), Decimal(50)]
        delta = solve_constant_product_basket(reserves, deposits)

        with PrecisionContext(digits=100).activate():
            product = (reserves[0] + deposits[0] - delta) * (reserves[1] + deposits[1] - delta)
        assert abs(product - reserves[0] * reserves[1]) < Decimal("1e-80")
        assert 0 < delta < reserves[0] + deposits[0]

    def test_zero_deposits(self) -> None:
        assert solve_constant_product_basket([100, 100], [0, 0]) == 0

    def test_symmetric_deposit(self) -> None:
        """Равные резервы и равные депозиты: Δ = x"""
        delta = solve_constant_product_basket([100, 100], [5, 5])
        assert delta == 5

    def test_raw_function_needs_two_assets(self) -> None:
        with pytest.raises(InvalidInputError, match="exactly 2"):
            constant_product_basket([Decimal(1)] * 3, [Decimal(0)] * 3)

    def test_three_assets_rejected(self) -> None:
        with pytest.raises(InvalidInputError):
            solve_constant_product_basket([1, 2, 3], [0, 0, 0])

    def test_negative_deposit_rejected(self) -> None:
        with pytest.raises(InvalidInputError):
            solve_constant_product_basket([100, 100], [-1, 0])
