"""
Domain models and value objects.

Contains the immutable inputs of a solve call: PoolState, DepositVector.
"""

from src.core.domain.pool_state import DepositVector, PoolState

__all__ = [
    "PoolState",
    "DepositVector",
]
