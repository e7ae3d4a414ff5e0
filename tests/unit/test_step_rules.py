"""
Тесты для Step Rules

α-правила проверяются против общих формул через производные
нормированной невязки F(α) = 1 − ∏b^w / h:
    F'   =  (1 − F)·S
    F''  = −(1 − F)·(S² + T)
    F''' =  (1 − F)·(S³ + 3ST + 2U)
"""

from decimal import Decimal, localcontext

import pytest

from src.solver.config import IterateDomain, SolverOrder
from src.solver.errors import VanishingDerivativeError
from src.solver.invariant import AlphaEvaluation, BasketEvaluation, PowerSums
from src.solver.step_rules import (
    STEP_RULES,
    chebyshev_delta_step,
    halley_alpha_step,
    householder_alpha_step,
    newton_alpha_step,
    newton_delta_step,
)

FLOOR = Decimal("1e-80")


def _alpha_eval(f: str, s: str, t: str = "0", u=None) -> AlphaEvaluation:
    return AlphaEvaluation(
        alpha=Decimal("0.5"),
        value=Decimal(0),
        product=Decimal(1),
        product_ratio=1 - Decimal(f),
        sums=PowerSums(s=Decimal(s), t=Decimal(t), u=None if u is None else Decimal(u)),
        derivatives=(),
    )


def _basket_eval(value: str, d1: str, d2: str = "0") -> BasketEvaluation:
    return BasketEvaluation(
        delta=Decimal(10),
        value=Decimal(value),
        product=Decimal(1),
        sums=PowerSums(s=Decimal(0), t=Decimal(0)),
        derivatives=(Decimal(d1), Decimal(d2)),
    )


@pytest.fixture(autouse=True)
def high_precision():
    with localcontext() as ctx:
        ctx.prec = 60
        yield


def _close(a: Decimal, b: Decimal) -> bool:
    return abs(a - b) < Decimal("1e-50")


# =============================================================================
# α-DOMAIN
# =============================================================================


class TestNewtonAlpha:
    def test_step(self) -> None:
        assert newton_alpha_step(_alpha_eval("0.1", "2"), FLOOR) == Decimal("0.05")

    def test_vanishing_s(self) -> None:
        with pytest.raises(VanishingDerivativeError, match="S"):
            newton_alpha_step(_alpha_eval("0.1", "1e-90"), FLOOR)


class TestHalleyAlpha:
    def test_matches_general_halley(self) -> None:
        f, s, t = Decimal("0.1"), Decimal(2), Decimal(1)
        f1 = (1 - f) * s
        f2 = -(1 - f) * (s * s + t)
        expected = 2 * f * f1 / (2 * f1 * f1 - f * f2)

        step = halley_alpha_step(_alpha_eval("0.1", "2", "1"), FLOOR)
        assert _close(step, expected)
        assert step == Decimal("0.4") / Decimal("7.7")

    def test_reduces_to_newton_at_small_residual(self) -> None:
        newton = newton_alpha_step(_alpha_eval("1e-30", "3", "2"), FLOOR)
        halley = halley_alpha_step(_alpha_eval("1e-30", "3", "2"), FLOOR)
        assert abs(newton - halley) < Decimal("1e-55")


class TestHouseholderAlpha:
    def test_matches_general_third_order(self) -> None:
        f, s, t, u = Decimal("0.1"), Decimal(2), Decimal(1), Decimal("0.5")
        f1 = (1 - f) * s
        f2 = -(1 - f) * (s * s + t)
        f3 = (1 - f) * (s ** 3 + 3 * s * t + 2 * u)
        expected = (f / f1) / (1 - f * f2 / (2 * f1 * f1) + f * f * f3 / (6 * f1 ** 3))

        step = householder_alpha_step(_alpha_eval("0.1", "2", "1", "0.5"), FLOOR)
        assert _close(step, expected)

    def test_requires_cubic_sum(self) -> None:
        with pytest.raises(ValueError, match="cubic"):
            householder_alpha_step(_alpha_eval("0.1", "2", "1"), FLOOR)

    def test_vanishing_s(self) -> None:
        with pytest.raises(VanishingDerivativeError):
            householder_alpha_step(_alpha_eval("0.1", "0", "1", "1"), FLOOR)


# =============================================================================
# Δ-DOMAIN
# =============================================================================


class TestNewtonDelta:
    def test_step(self) -> None:
        assert newton_delta_step(_basket_eval("6", "-3"), FLOOR) == Decimal(-2)

    def test_ignores_curvature(self) -> None:
        assert newton_delta_step(_basket_eval("2", "-4", "8"), FLOOR) == Decimal("-0.5")

    def test_vanishing_derivative(self) -> None:
        with pytest.raises(VanishingDerivativeError, match="f'"):
            newton_delta_step(_basket_eval("1", "1e-90"), FLOOR)


class TestChebyshevDelta:
    def test_linear_reduces_to_newton(self) -> None:
        step = chebyshev_delta_step(_basket_eval("6", "-3", "0"), FLOOR)
        assert step == Decimal(-2)

    def test_curvature_term(self) -> None:
        # f/f' + f²f''/(2f'³) = 2/(-4) + 4·8/(2·(-64)) = -0.5 - 0.25
        step = chebyshev_delta_step(_basket_eval("2", "-4", "8"), FLOOR)
        assert step == Decimal("-0.75")

    def test_vanishing_derivative(self) -> None:
        with pytest.raises(VanishingDerivativeError, match="f'"):
            chebyshev_delta_step(_basket_eval("1", "0", "1"), FLOOR)

    def test_exact_root_of_quadratic(self) -> None:
        """f(Δ) = Δ² − 4 из Δ = 3: шаг Чебышёва ближе к корню, чем Ньютона"""
        delta = Decimal(3)
        value, d1, d2 = delta * delta - 4, 2 * delta, Decimal(2)
        ev = _basket_eval(str(value), str(d1), str(d2))
        newton_next = delta - value / d1
        chebyshev_next = delta - chebyshev_delta_step(ev, FLOOR)
        assert abs(chebyshev_next - 2) < abs(newton_next - 2)


# =============================================================================
# REGISTRY
# =============================================================================


class TestRegistry:
    def test_all_orders_registered(self) -> None:
        assert set(STEP_RULES) == set(SolverOrder)

    @pytest.mark.parametrize(
        "order,domain,derivative_order",
        [
            (SolverOrder.NEWTON, IterateDomain.ALPHA, 1),
            (SolverOrder.HALLEY, IterateDomain.ALPHA, 2),
            (SolverOrder.HOUSEHOLDER, IterateDomain.ALPHA, 3),
            (SolverOrder.CHEBYSHEV, IterateDomain.DELTA, 2),
            (SolverOrder.NEWTON_DELTA, IterateDomain.DELTA, 1),
        ],
    )
    def test_rule_metadata(self, order, domain, derivative_order) -> None:
        rule = STEP_RULES[order]
        assert rule.order is order
        assert rule.domain is domain
        assert rule.derivative_order == derivative_order
