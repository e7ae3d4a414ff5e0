"""Тесты для Initial-Guess Estimator."""

from decimal import Decimal

import pytest

from src.core.math.precision import PrecisionContext
from src.solver.initial_guess import (
    SEED_BRACKET_RATIO,
    alpha_upper_bound,
    analytical_alpha,
    bracket_alpha_seed,
    estimate_initial_guess,
)
from src.solver.invariant import AlphaParameters, augmented_balances, evaluate_alpha

RESERVES = (Decimal(20), Decimal(300), Decimal(400), Decimal(50000))
WEIGHTS = (Decimal("0.4"), Decimal("0.2"), Decimal("0.1"), Decimal("0.3"))


@pytest.fixture(autouse=True)
def high_precision():
    with PrecisionContext(digits=60).activate():
        yield


class TestAnalyticalAlpha:
    """Оценка 1: α₀ = ∏ (a_i/r_i)^{−w_i/w_argmin}"""

    def test_single_deposit(self) -> None:
        """Депозит только в argmin: α₀ = r/a"""
        balances = augmented_balances(RESERVES, (Decimal(100), 0, 0, 0))
        alpha = analytical_alpha(RESERVES, balances, WEIGHTS)
        assert abs(alpha - Decimal(1) / Decimal(6)) < Decimal("1e-50")

    def test_zero_deposits_gives_one(self) -> None:
        alpha = analytical_alpha(RESERVES, RESERVES, WEIGHTS)
        assert alpha == 1

    @pytest.mark.parametrize(
        "deposits",
        [
            (Decimal(1), Decimal(0), Decimal(0), Decimal(0)),
            (Decimal(0), Decimal(5000), Decimal(0), Decimal(0)),
            (Decimal(10), Decimal(10), Decimal(10), Decimal(10)),
            (Decimal(10**6), Decimal(10**6), Decimal(10**6), Decimal(10**6)),
        ],
    )
    def test_alpha_in_unit_interval(self, deposits) -> None:
        balances = augmented_balances(RESERVES, deposits)
        alpha = analytical_alpha(RESERVES, balances, WEIGHTS)
        assert 0 < alpha <= 1


class TestAlphaUpperBound:
    """Оценка 2 (диагностическая)"""

    def test_zero_deposits(self) -> None:
        assert alpha_upper_bound(RESERVES, RESERVES, WEIGHTS) == 1

    def test_matches_formula(self) -> None:
        balances = augmented_balances(RESERVES, (Decimal(100), 0, 0, 0))
        big_l = Decimal(120)
        expected_num = sum(
            (w * (big_l / a - (a / r).ln()) for r, a, w in zip(RESERVES, balances, WEIGHTS)),
            Decimal(0),
        )
        expected_den = sum((w * big_l / a for a, w in zip(balances, WEIGHTS)), Decimal(0))
        bound = alpha_upper_bound(RESERVES, balances, WEIGHTS)
        assert abs(bound - expected_num / expected_den) < Decimal("1e-50")


class TestEstimateInitialGuess:
    """Полная оценка"""

    def test_delta_from_alpha(self) -> None:
        balances = augmented_balances(RESERVES, (Decimal(100), 0, 0, 0))
        guess = estimate_initial_guess(RESERVES, balances, WEIGHTS)

        assert guess.bound.value == Decimal(120)
        assert guess.bound.index == 0
        assert abs(guess.alpha - Decimal(1) / Decimal(6)) < Decimal("1e-50")
        assert guess.alpha <= guess.seed < Decimal("0.5")
        assert guess.delta == (1 - guess.seed) * guess.bound.value
        assert 0 <= guess.delta <= Decimal(100)

    def test_zero_deposits_seed_is_one(self) -> None:
        guess = estimate_initial_guess(RESERVES, RESERVES, WEIGHTS)
        assert guess.seed == 1
        assert guess.delta == 0

    def test_argmin_shifts_with_deposit(self) -> None:
        """Депозит больше разницы резервов меняет argmin"""
        balances = augmented_balances(RESERVES, (Decimal(500), 0, 0, 0))
        guess = estimate_initial_guess(RESERVES, balances, WEIGHTS)
        assert guess.bound.index == 1
        assert guess.bound.value == Decimal(300)


class TestBracketSeed:
    """Сужение брекета [α₀, 1] геометрической бисекцией"""

    reserves = (Decimal(100), Decimal("0.001"))
    weights = (Decimal("0.01"), Decimal("0.99"))
    deposits = (Decimal(0), Decimal(100))

    def _params(self):
        balances = augmented_balances(self.reserves, self.deposits)
        return balances, AlphaParameters.from_balances(self.reserves, balances, self.weights)

    def test_analytical_alpha_far_below_root(self) -> None:
        """Малый вес argmin: α₀ ≈ 100001^{-99}, корень α* ≈ 1.45e-6"""
        balances, _ = self._params()
        alpha = analytical_alpha(self.reserves, balances, self.weights)
        assert alpha < Decimal("1e-490")

    def test_seed_brackets_root(self) -> None:
        balances, params = self._params()
        alpha = analytical_alpha(self.reserves, balances, self.weights)
        seed = bracket_alpha_seed(alpha, params, self.weights)

        assert Decimal("9e-7") < seed < Decimal("1.46e-6")
        assert evaluate_alpha(seed, params, self.weights, order=0).residual < 0
        upper = seed * SEED_BRACKET_RATIO
        assert evaluate_alpha(upper, params, self.weights, order=0).residual > 0

    def test_narrow_bracket_keeps_alpha(self) -> None:
        _, params = self._params()
        assert bracket_alpha_seed(Decimal("0.9"), params, self.weights) == Decimal("0.9")

    def test_bisection_limit(self) -> None:
        balances, params = self._params()
        alpha = analytical_alpha(self.reserves, balances, self.weights)
        assert bracket_alpha_seed(alpha, params, self.weights, max_bisections=0) == alpha

    def test_estimate_uses_seed_for_delta(self) -> None:
        balances, _ = self._params()
        guess = estimate_initial_guess(self.reserves, balances, self.weights)
        assert guess.bound.index == 0
        assert guess.seed > guess.alpha
        assert 0 < guess.delta < guess.bound.value
