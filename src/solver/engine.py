"""
Basket Solver Engine — публичные операции

Операции:
- solve(reserves, weights, deposits, config) → SolveResult
  Итеративное решение ∏ (a_i − Δ)^{w_i} = ∏ r_i^{w_i} относительно Δ
- solve_single_output(reserves, weights, delta, output_index) → Decimal
  Closed-form выход одного актива
- solve_constant_product_basket(reserves, deposits) → Decimal
  Closed-form Δ для N = 2 с равными весами
- solve_from_request(payload) → SolveResult
  solve по JSON запросу, проверенному контрактом solve_request

Поток solve:
    вход → валидация (Pydantic) → PrecisionContext.activate()
         → Initial-Guess Estimator → Iterative Corrector
           (Invariant Evaluator + Domain Guard на каждой итерации)
         → SolveResult

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. solve() никогда не бросает исключения solver: отказ = SolveResult(FAILED)
2. Вся арифметика одного вызова идёт в одном decimal контексте
3. Возвращённый Δ удовлетворяет 0 <= Δ < L
4. Между вызовами ничего не кэшируется (K, L, α-параметры считаются заново)
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal, DivisionByZero, InvalidOperation, Overflow
from typing import Any, Optional, Union

from src.core.contracts import validate_solve_request
from src.core.domain.pool_state import DepositVector, PoolState
from src.core.math.decimal_safeguards import DecimalLike, format_exponential, to_decimal, to_decimal_tuple
from src.core.math.precision import DEFAULT_PRECISION_DIGITS, PrecisionContext
from src.solver.closed_form import constant_product_basket, single_output_amount
from src.solver.config import IterateDomain, SolverConfig, SolverOrder
from src.solver.corrector import AbortHook, CorrectorState, IterativeCorrector
from src.solver.diagnostics import DiagnosticsSink, IterationRecord
from src.solver.domain_guard import DomainGuard
from src.solver.errors import (
    BasketSolverError,
    InvalidInputError,
    NonFiniteValueError,
    SolverFailure,
)
from src.solver.initial_guess import InitialGuess, estimate_initial_guess
from src.solver.invariant import (
    DomainBound,
    augmented_balances,
    compute_invariant,
    evaluate_alpha,
    evaluate_basket,
)
from src.solver.step_rules import STEP_RULES

logger = logging.getLogger(__name__)

_DECIMAL_SIGNALS = (InvalidOperation, DivisionByZero, Overflow)


# =============================================================================
# RESULT
# =============================================================================


@dataclass(frozen=True)
class SolveResult:
    """Результат solve.

    delta — Δ в точке остановки корректора. Для FAILED(MAX_ITERATIONS_EXCEEDED)
    это последний допустимый итерат, переведённый в Δ; для отказов до начала
    итераций delta = None. Проверять converged / failure перед использованием.
    residual — невязка в домене итерата (нормированная для α-правил,
    базовая f(Δ) для Δ-правил).
    """

    status: CorrectorState
    order: SolverOrder
    delta: Optional[Decimal] = None
    iterations: int = 0
    last_step: Optional[Decimal] = None
    residual: Optional[Decimal] = None
    invariant: Optional[Decimal] = None
    domain_bound: Optional[DomainBound] = None
    initial_guess: Optional[InitialGuess] = None
    failure: Optional[SolverFailure] = None
    error: Optional[BasketSolverError] = None
    trace: tuple[IterationRecord, ...] = field(default_factory=tuple)

    @property
    def converged(self) -> bool:
        return self.status == CorrectorState.CONVERGED

    def unwrap(self) -> Decimal:
        """Δ при успехе, иначе исходное типизированное исключение."""
        if self.error is not None:
            raise self.error
        if self.delta is None:
            raise InvalidInputError("Solve produced no delta")
        return self.delta


def _failed(
    order: SolverOrder,
    error: BasketSolverError,
    **kwargs: Any,
) -> SolveResult:
    logger.warning("basket solve failed: order=%s failure=%s: %s", order.value, error.failure.value, error)
    return SolveResult(
        status=CorrectorState.FAILED,
        order=order,
        failure=error.failure,
        error=error,
        **kwargs,
    )


# =============================================================================
# INPUT PREPARATION
# =============================================================================


def _build_inputs(
    reserves: Sequence[DecimalLike],
    weights: Sequence[DecimalLike],
    deposits: Sequence[DecimalLike],
    config: SolverConfig,
) -> tuple[PoolState, DepositVector]:
    """
    Приведение и валидация входа.

    Raises:
        InvalidInputError: любые нарушения формы или знаков
    """
    try:
        pool = PoolState(
            reserves=to_decimal_tuple(reserves, "reserves"),
            weights=to_decimal_tuple(weights, "weights"),
        )
        deposit = DepositVector(amounts=to_decimal_tuple(deposits, "deposits"))
        deposit.check_aligned(pool)
        if config.validate_weight_sum:
            with config.precision.activate():
                pool.check_weight_sum(config.weight_sum_tolerance)
    except ValueError as e:
        # pydantic.ValidationError тоже ValueError
        raise InvalidInputError(str(e)) from e
    return pool, deposit


def _coerce_config(config: Union[SolverConfig, Mapping[str, Any], None]) -> SolverConfig:
    if config is None:
        return SolverConfig()
    if isinstance(config, SolverConfig):
        return config
    return SolverConfig.from_mapping(config)


# =============================================================================
# SOLVE
# =============================================================================


def solve(
    reserves: Sequence[DecimalLike],
    weights: Sequence[DecimalLike],
    deposits: Sequence[DecimalLike],
    config: Union[SolverConfig, Mapping[str, Any], None] = None,
    *,
    diagnostics: Optional[DiagnosticsSink] = None,
    should_abort: Optional[AbortHook] = None,
    initial_delta: Optional[DecimalLike] = None,
) -> SolveResult:
    """
    Basket withdrawal Δ: ∏ (r_i + x_i − Δ)^{w_i} = ∏ r_i^{w_i}.

    Args:
        reserves: Резервы r_i > 0
        weights: Веса w_i > 0 (Σ w_i = 1 предполагается)
        deposits: Депозиты x_i >= 0
        config: SolverConfig или словарь его полей (None → defaults)
        diagnostics: Приёмник per-iteration записей
        should_abort: Hook (index, iterate) → True для остановки
        initial_delta: Стартовый Δ вместо оценки (для повтора с другой точки);
            вне [0, L) корректируется Domain Guard

    Returns:
        SolveResult (CONVERGED с Δ или FAILED с типизированной ошибкой)

    Examples:
        >>> result = solve([20, 300, 400, 50000], ["0.4", "0.2", "0.1", "0.3"], [100, 0, 0, 0])
        >>> result.converged
        True
    """
    try:
        config = _coerce_config(config)
    except InvalidInputError as e:
        return _failed(SolverOrder.NEWTON, e)

    try:
        pool, deposit = _build_inputs(reserves, weights, deposits, config)
    except InvalidInputError as e:
        return _failed(config.order, e)

    try:
        start = None if initial_delta is None else to_decimal(initial_delta, "initial_delta")
    except ValueError as e:
        return _failed(config.order, InvalidInputError(str(e)))

    with config.precision.activate():
        return _solve_in_context(pool, deposit, config, diagnostics, should_abort, start)


def _solve_in_context(
    pool: PoolState,
    deposit: DepositVector,
    config: SolverConfig,
    diagnostics: Optional[DiagnosticsSink],
    should_abort: Optional[AbortHook],
    initial_delta: Optional[Decimal] = None,
) -> SolveResult:
    order = config.order
    rule = STEP_RULES[order]
    reserves = pool.reserves
    weights = pool.weights

    try:
        balances = augmented_balances(reserves, deposit.amounts)
        invariant = compute_invariant(reserves, weights)
        guess = estimate_initial_guess(reserves, balances, weights)
    except _DECIMAL_SIGNALS as e:
        error = NonFiniteValueError(f"Decimal signal {type(e).__name__} during setup")
        error.__cause__ = e
        return _failed(order, error)

    bound = guess.bound
    params = guess.params
    logger.debug(
        "basket solve: n=%d order=%s digits=%d L=%s argmin=%d alpha0=%s seed=%s alpha_bound=%s",
        pool.n_assets,
        order.value,
        config.precision.digits,
        format_exponential(bound.value, 12),
        bound.index,
        format_exponential(guess.alpha, 12),
        format_exponential(guess.seed, 12),
        format_exponential(guess.alpha_bound, 12),
    )

    if rule.domain is IterateDomain.ALPHA:
        guard = DomainGuard.alpha_domain()
        initial = guess.seed if initial_delta is None else 1 - initial_delta / bound.value

        def evaluate(alpha: Decimal, derivative_order: int):
            return evaluate_alpha(alpha, params, weights, derivative_order)

        to_delta = params.to_delta
    else:
        guard = DomainGuard.delta_domain(bound.value)
        initial = guess.delta if initial_delta is None else initial_delta

        def evaluate(delta: Decimal, derivative_order: int):
            return evaluate_basket(delta, balances, weights, invariant, derivative_order)

        def to_delta(delta: Decimal) -> Decimal:
            return delta

    corrector = IterativeCorrector(
        rule,
        guard,
        tolerance=config.tolerance,
        residual_tolerance=config.residual_tolerance,
        max_iterations=config.max_iterations,
        derivative_floor=config.derivative_floor,
        diagnostics=diagnostics,
        should_abort=should_abort,
    )
    outcome = corrector.run(initial, evaluate)
    if outcome.initial_clamped:
        logger.debug("basket solve: initial iterate %s moved into %r", initial, guard)

    delta = to_delta(outcome.iterate) if guard.contains(outcome.iterate) else None
    common = dict(
        delta=delta,
        iterations=outcome.iterations,
        last_step=outcome.last_step,
        residual=outcome.residual,
        invariant=invariant,
        domain_bound=bound,
        initial_guess=guess,
        trace=outcome.trace,
    )

    if outcome.error is not None:
        return _failed(order, outcome.error, **common)

    logger.debug(
        "basket solve converged: order=%s iterations=%d delta=%s",
        order.value,
        outcome.iterations,
        format_exponential(delta, 12) if delta is not None else None,
    )
    return SolveResult(status=CorrectorState.CONVERGED, order=order, **common)


def solve_from_request(
    payload: Mapping[str, Any],
    *,
    diagnostics: Optional[DiagnosticsSink] = None,
    should_abort: Optional[AbortHook] = None,
) -> SolveResult:
    """
    solve по JSON запросу (значения — строки или числа).

    Raises:
        jsonschema.ValidationError: Если запрос не соответствует контракту
    """
    validate_solve_request(dict(payload))
    return solve(
        payload["reserves"],
        payload["weights"],
        payload["deposits"],
        payload.get("config"),
        diagnostics=diagnostics,
        should_abort=should_abort,
    )


# =============================================================================
# CLOSED FORMS
# =============================================================================


def _closed_form_precision(precision: Union[PrecisionContext, int, None]) -> PrecisionContext:
    if precision is None:
        return PrecisionContext(digits=DEFAULT_PRECISION_DIGITS)
    if isinstance(precision, PrecisionContext):
        return precision
    try:
        return PrecisionContext(digits=precision)
    except ValueError as e:
        raise InvalidInputError(str(e)) from e


def solve_single_output(
    reserves: Sequence[DecimalLike],
    weights: Sequence[DecimalLike],
    delta: DecimalLike,
    output_index: int,
    precision: Union[PrecisionContext, int, None] = None,
) -> Decimal:
    """
    Выход актива output_index после депозита Δ′ в каждый из остальных активов.

    Args:
        reserves: Резервы r_i > 0
        weights: Веса w_i > 0
        delta: Общий депозит Δ′ >= 0
        output_index: Индекс выходного актива
        precision: PrecisionContext или число цифр (None → 100)

    Returns:
        r_out − r_out'

    Raises:
        InvalidInputError: некорректный вход
        NonFiniteValueError: decimal сигнал при вычислении
    """
    precision = _closed_form_precision(precision)
    try:
        pool = PoolState(
            reserves=to_decimal_tuple(reserves, "reserves"),
            weights=to_decimal_tuple(weights, "weights"),
        )
        delta_dec = to_decimal(delta, "delta")
    except ValueError as e:
        raise InvalidInputError(str(e)) from e

    if delta_dec < 0:
        raise InvalidInputError(f"delta must be non-negative, got {delta_dec}")

    with precision.activate():
        try:
            return single_output_amount(pool.reserves, pool.weights, delta_dec, output_index)
        except _DECIMAL_SIGNALS as e:
            raise NonFiniteValueError(
                f"Decimal signal {type(e).__name__} in single-output solve"
            ) from e


def solve_constant_product_basket(
    reserves: Sequence[DecimalLike],
    deposits: Sequence[DecimalLike],
    precision: Union[PrecisionContext, int, None] = None,
) -> Decimal:
    """
    Closed-form Δ для пула из двух активов с равными весами.

    Raises:
        InvalidInputError: некорректный вход или N != 2
    """
    precision = _closed_form_precision(precision)
    try:
        reserves_dec = to_decimal_tuple(reserves, "reserves")
        pool = PoolState(reserves=reserves_dec, weights=(Decimal("0.5"), Decimal("0.5")))
        deposit = DepositVector(amounts=to_decimal_tuple(deposits, "deposits"))
        deposit.check_aligned(pool)
    except ValueError as e:
        raise InvalidInputError(str(e)) from e

    with precision.activate():
        return constant_product_basket(pool.reserves, deposit.amounts)
