"""Ошибки basket solver — типизированная таксономия отказов.

Каждый отказ имеет код SolverFailure и класс исключения. Итеративный solve
не пробрасывает эти исключения наружу: они упаковываются в SolveResult.
Closed-form функции пробрасывают их напрямую.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional


class SolverFailure(str, Enum):
    """Код отказа solver."""

    INVALID_INPUT = "INVALID_INPUT"
    ZERO_OR_VANISHING_DERIVATIVE = "ZERO_OR_VANISHING_DERIVATIVE"
    DOMAIN_VIOLATION = "DOMAIN_VIOLATION"
    MAX_ITERATIONS_EXCEEDED = "MAX_ITERATIONS_EXCEEDED"
    NON_FINITE_VALUE = "NON_FINITE_VALUE"
    ABORTED = "ABORTED"


class BasketSolverError(Exception):
    """Базовое исключение solver.

    Attributes:
        failure: код отказа
        iterate: последний итерат (если отказ произошёл во время итераций)
        residual: последняя невязка
        iteration: индекс итерации, на которой произошёл отказ
    """

    failure: SolverFailure = SolverFailure.INVALID_INPUT

    def __init__(
        self,
        message: str,
        *,
        iterate: Optional[Decimal] = None,
        residual: Optional[Decimal] = None,
        iteration: Optional[int] = None,
    ):
        super().__init__(message)
        self.iterate = iterate
        self.residual = residual
        self.iteration = iteration


class InvalidInputError(BasketSolverError, ValueError):
    """Некорректный вход: длины, знаки, сумма весов, конфигурация, начальное приближение."""

    failure = SolverFailure.INVALID_INPUT


class VanishingDerivativeError(BasketSolverError):
    """Модуль производной (или знаменателя шага) ниже численного порога."""

    failure = SolverFailure.ZERO_OR_VANISHING_DERIVATIVE


class DomainViolationError(BasketSolverError):
    """Бисекция не смогла построить допустимую точку внутри домена."""

    failure = SolverFailure.DOMAIN_VIOLATION


class MaxIterationsExceededError(BasketSolverError):
    """Сходимость не достигнута за max_iterations итераций."""

    failure = SolverFailure.MAX_ITERATIONS_EXCEEDED


class NonFiniteValueError(BasketSolverError, ArithmeticError):
    """NaN/Infinity или decimal сигнал (InvalidOperation, DivisionByZero, Overflow)."""

    failure = SolverFailure.NON_FINITE_VALUE


class SolveAbortedError(BasketSolverError):
    """Итерации остановлены hook-ом вызывающей стороны."""

    failure = SolverFailure.ABORTED
