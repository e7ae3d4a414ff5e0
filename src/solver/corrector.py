"""Iterative Corrector — конечный автомат итераций с подключаемой формулой шага.

Состояния:
- RUNNING(iterate, index) — начальное состояние, итерат из Initial-Guess Estimator
  (точка вне домена сначала корректируется Domain Guard)
- CONVERGED(iterate) — |step| < tolerance или |f| < residual_tolerance
- FAILED(reason) — любой BasketSolverError, включая MAX_ITERATIONS_EXCEEDED

Итерация:
1. hook should_abort(index, iterate) → FAILED(ABORTED)
2. оценка f и нужных аккумуляторов в текущей точке
3. |f| < residual_tolerance → CONVERGED без шага
4. шаг по формуле, проверка конечности
5. Domain Guard принимает точку или подставляет бисекцию
6. запись IterationRecord в diagnostics sink
7. |step| < tolerance (и не было бисекции) → CONVERGED
"""

from dataclasses import dataclass, field
from decimal import Decimal, DivisionByZero, InvalidOperation, Overflow
from enum import Enum
from typing import Any, Callable, List, Optional

from src.core.math.decimal_safeguards import is_finite_decimal
from src.solver.diagnostics import DiagnosticsSink, IterationRecord
from src.solver.domain_guard import DomainGuard
from src.solver.errors import (
    BasketSolverError,
    MaxIterationsExceededError,
    NonFiniteValueError,
    SolveAbortedError,
)
from src.solver.step_rules import StepRule

# evaluate(iterate, derivative_order) -> объект с .residual
Evaluator = Callable[[Decimal, int], Any]
AbortHook = Callable[[int, Decimal], bool]


class CorrectorState(str, Enum):
    """Состояние корректора."""

    RUNNING = "RUNNING"
    CONVERGED = "CONVERGED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class CorrectorOutcome:
    """Терминальное состояние корректора."""

    state: CorrectorState
    iterate: Decimal
    iterations: int
    last_step: Optional[Decimal]
    residual: Optional[Decimal]
    error: Optional[BasketSolverError] = None
    trace: tuple[IterationRecord, ...] = field(default_factory=tuple)
    initial_clamped: bool = False

    @property
    def converged(self) -> bool:
        return self.state == CorrectorState.CONVERGED


def _checked(value: Decimal, name: str, iterate: Decimal, index: int) -> Decimal:
    if not is_finite_decimal(value):
        raise NonFiniteValueError(
            f"{name} is not finite: {value}", iterate=iterate, iteration=index
        )
    return value


class IterativeCorrector:
    """Общий цикл сходимости для всех правил шага.

    Экземпляр одноразовый по смыслу: состояние сбрасывается в начале run(),
    между вызовами solve ничего не разделяется.
    """

    def __init__(
        self,
        rule: StepRule,
        guard: DomainGuard,
        *,
        tolerance: Decimal,
        residual_tolerance: Decimal,
        max_iterations: int,
        derivative_floor: Decimal,
        diagnostics: Optional[DiagnosticsSink] = None,
        should_abort: Optional[AbortHook] = None,
    ):
        self.rule = rule
        self.guard = guard
        self.tolerance = tolerance
        self.residual_tolerance = residual_tolerance
        self.max_iterations = max_iterations
        self.derivative_floor = derivative_floor
        self.diagnostics = diagnostics
        self.should_abort = should_abort

        self.state = CorrectorState.RUNNING
        self._trace: List[IterationRecord] = []
        self._initial_clamped = False

    def run(self, initial: Decimal, evaluate: Evaluator) -> CorrectorOutcome:
        """Итерации от initial до терминального состояния.

        Args:
            initial: Начальный итерат; вне домена заменяется бисекцией guard
            evaluate: evaluate(iterate, derivative_order) → оценка с .residual

        Returns:
            CorrectorOutcome; исключения solver упакованы в outcome.error
        """
        self.state = CorrectorState.RUNNING
        self._trace = []
        self._initial_clamped = False

        iterate = initial
        index = 0
        last_step: Optional[Decimal] = None
        residual: Optional[Decimal] = None

        try:
            start = self.guard.admit_initial(iterate)
            iterate = start.value
            self._initial_clamped = start.clamped

            while index < self.max_iterations:
                if self.should_abort is not None and self.should_abort(index, iterate):
                    raise SolveAbortedError(
                        f"Aborted by caller at iteration {index}",
                        iterate=iterate,
                        residual=residual,
                        iteration=index,
                    )

                evaluation = evaluate(iterate, self.rule.derivative_order)
                residual = _checked(evaluation.residual, "residual", iterate, index)

                if abs(residual) < self.residual_tolerance:
                    return self._finish(CorrectorState.CONVERGED, iterate, index, last_step, residual)

                raw_step = _checked(
                    self.rule.compute(evaluation, self.derivative_floor), "step", iterate, index
                )
                decision = self.guard.admit(iterate, iterate - raw_step)
                applied = iterate - decision.value

                self._emit(
                    IterationRecord(
                        index=index,
                        iterate=iterate,
                        step=applied,
                        f_value=residual,
                        raw_step=raw_step,
                        clamped=decision.clamped,
                    )
                )

                iterate = decision.value
                last_step = applied
                index += 1

                if not decision.clamped and abs(applied) < self.tolerance:
                    return self._finish(CorrectorState.CONVERGED, iterate, index, last_step, residual)

            raise MaxIterationsExceededError(
                f"No convergence within {self.max_iterations} iterations "
                f"(last step {last_step}, residual {residual})",
                iterate=iterate,
                residual=residual,
                iteration=index,
            )

        except BasketSolverError as e:
            return self._finish(CorrectorState.FAILED, iterate, index, last_step, residual, e)
        except (InvalidOperation, DivisionByZero, Overflow) as e:
            error = NonFiniteValueError(
                f"Decimal signal {type(e).__name__} at iteration {index}",
                iterate=iterate,
                residual=residual,
                iteration=index,
            )
            error.__cause__ = e
            return self._finish(CorrectorState.FAILED, iterate, index, last_step, residual, error)

    def _emit(self, record: IterationRecord) -> None:
        self._trace.append(record)
        if self.diagnostics is not None:
            self.diagnostics.record(record)

    def _finish(
        self,
        state: CorrectorState,
        iterate: Decimal,
        iterations: int,
        last_step: Optional[Decimal],
        residual: Optional[Decimal],
        error: Optional[BasketSolverError] = None,
    ) -> CorrectorOutcome:
        self.state = state
        return CorrectorOutcome(
            state=state,
            iterate=iterate,
            iterations=iterations,
            last_step=last_step,
            residual=residual,
            error=error,
            trace=tuple(self._trace),
            initial_clamped=self._initial_clamped,
        )
