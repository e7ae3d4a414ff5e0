"""
PoolState — Модель состояния взвешенного пула и вектора депозитов

Immutable Pydantic модели, представляющие вход одного вызова solver:
- PoolState: резервы r_i > 0 и веса w_i > 0 для N ≥ 2 активов
- DepositVector: неотрицательные депозиты x_i, выровненные по индексам с пулом

Σ w_i = 1 предполагается, но не проверяется моделью (проверка опциональна
и выполняется solver при validate_weight_sum=True).
"""

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from src.core.contracts import validate_pool_snapshot
from src.core.math.decimal_safeguards import validate_non_negative, validate_positive


# =============================================================================
# POOL STATE
# =============================================================================


class PoolState(BaseModel):
    """
    Снапшот взвешенного пула: упорядоченные резервы и веса.

    Не мутируется solver; K = ∏ r_i^{w_i} пересчитывается на каждый вызов.
    """

    reserves: tuple[Decimal, ...] = Field(
        ..., min_length=2, description="Резервы r_i (строго положительные)"
    )
    weights: tuple[Decimal, ...] = Field(
        ..., min_length=2, description="Веса w_i (строго положительные)"
    )

    model_config = {"frozen": True}

    @field_validator("reserves")
    @classmethod
    def validate_reserves_positive(cls, v: tuple[Decimal, ...]) -> tuple[Decimal, ...]:
        """Каждый резерв > 0"""
        for i, r in enumerate(v):
            validate_positive(r, f"reserves[{i}]")
        return v

    @field_validator("weights")
    @classmethod
    def validate_weights_positive(cls, v: tuple[Decimal, ...]) -> tuple[Decimal, ...]:
        """Каждый вес > 0"""
        for i, w in enumerate(v):
            validate_positive(w, f"weights[{i}]")
        return v

    @model_validator(mode="after")
    def validate_lengths_match(self) -> "PoolState":
        """Резервы и веса выровнены по индексам"""
        if len(self.reserves) != len(self.weights):
            raise ValueError(
                f"reserves and weights length mismatch: "
                f"{len(self.reserves)} != {len(self.weights)}"
            )
        return self

    @property
    def n_assets(self) -> int:
        return len(self.reserves)

    def weight_sum(self) -> Decimal:
        """Σ w_i в активном decimal контексте."""
        return sum(self.weights, Decimal(0))

    def check_weight_sum(self, tolerance: Decimal) -> None:
        """
        Проверка |Σ w_i − 1| <= tolerance.

        Raises:
            ValueError: Если сумма весов отличается от 1 больше чем на tolerance
        """
        total = self.weight_sum()
        if abs(total - 1) > tolerance:
            raise ValueError(f"weights must sum to 1 (±{tolerance}), got {total}")

    @classmethod
    def from_snapshot(cls, data: dict[str, Any]) -> "PoolState":
        """
        Построение PoolState из JSON снапшота пула.

        Снапшот проверяется контрактом pool_snapshot до построения модели.

        Raises:
            jsonschema.ValidationError: Если снапшот не соответствует контракту
            pydantic.ValidationError: Если значения не проходят валидацию модели
        """
        validate_pool_snapshot(data)
        return cls(
            reserves=tuple(Decimal(str(r)) for r in data["reserves"]),
            weights=tuple(Decimal(str(w)) for w in data["weights"]),
        )


# =============================================================================
# DEPOSIT VECTOR
# =============================================================================


class DepositVector(BaseModel):
    """
    Вектор депозитов x_i ≥ 0; ноль для активов без входа.
    """

    amounts: tuple[Decimal, ...] = Field(
        ..., min_length=2, description="Депозиты x_i (неотрицательные)"
    )

    model_config = {"frozen": True}

    @field_validator("amounts")
    @classmethod
    def validate_amounts_non_negative(cls, v: tuple[Decimal, ...]) -> tuple[Decimal, ...]:
        """Каждый депозит >= 0"""
        for i, x in enumerate(v):
            validate_non_negative(x, f"deposits[{i}]")
        return v

    def check_aligned(self, pool: PoolState) -> None:
        """
        Проверка выравнивания с пулом.

        Raises:
            ValueError: Если длины не совпадают
        """
        if len(self.amounts) != pool.n_assets:
            raise ValueError(
                f"deposits length {len(self.amounts)} does not match "
                f"pool size {pool.n_assets}"
            )
