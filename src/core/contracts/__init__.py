"""
Contract Validation Module

Модуль для валидации JSON контрактов, поступающих от коллабораторов solver.
"""

from .validators import (
    ContractValidator,
    PoolSnapshotValidator,
    SchemaLoader,
    SolveRequestValidator,
    validate_pool_snapshot,
    validate_solve_request,
)

__all__ = [
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "PoolSnapshotValidator",
    "SolveRequestValidator",
    # Functions
    "validate_pool_snapshot",
    "validate_solve_request",
]
