"""Basket Solver — вывод Δ для basket withdrawal из взвешенного пула.

- Invariant Evaluator: K, f(Δ), α-форма и производные
- Initial-Guess Estimator: аналитическая стартовая точка α₀
- Iterative Corrector: Newton / Halley / Householder / Chebyshev
- Domain Guard: бисекция к нарушенной границе
- Closed forms: single-output и N=2 constant product
"""

from .config import IterateDomain, SolverConfig, SolverOrder
from .corrector import CorrectorOutcome, CorrectorState, IterativeCorrector
from .diagnostics import (
    DiagnosticsSink,
    IterationRecord,
    LoggingDiagnosticsSink,
    RecordingDiagnosticsSink,
)
from .engine import (
    SolveResult,
    solve,
    solve_constant_product_basket,
    solve_from_request,
    solve_single_output,
)
from .errors import (
    BasketSolverError,
    DomainViolationError,
    InvalidInputError,
    MaxIterationsExceededError,
    NonFiniteValueError,
    SolveAbortedError,
    SolverFailure,
    VanishingDerivativeError,
)

__all__ = [
    # Config
    "IterateDomain",
    "SolverConfig",
    "SolverOrder",
    # Corrector
    "CorrectorOutcome",
    "CorrectorState",
    "IterativeCorrector",
    # Diagnostics
    "DiagnosticsSink",
    "IterationRecord",
    "LoggingDiagnosticsSink",
    "RecordingDiagnosticsSink",
    # Engine
    "SolveResult",
    "solve",
    "solve_constant_product_basket",
    "solve_from_request",
    "solve_single_output",
    # Errors
    "BasketSolverError",
    "DomainViolationError",
    "InvalidInputError",
    "MaxIterationsExceededError",
    "NonFiniteValueError",
    "SolveAbortedError",
    "SolverFailure",
    "VanishingDerivativeError",
]
