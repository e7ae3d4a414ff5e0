"""Diagnostics — наблюдение за итерациями корректора.

Sink получает IterationRecord на каждой итерации. Sink чисто наблюдательный:
он не влияет на ход итераций.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Protocol

from src.core.math.decimal_safeguards import format_exponential


@dataclass(frozen=True)
class IterationRecord:
    """Одна итерация корректора.

    step — фактически применённый шаг (current − next), raw_step — шаг
    формулы до Domain Guard. clamped=True если сработала бисекция.
    """

    index: int
    iterate: Decimal
    step: Decimal
    f_value: Decimal
    raw_step: Optional[Decimal] = None
    clamped: bool = False

    def as_tuple(self) -> tuple[int, Decimal, Decimal, Decimal]:
        """(index, iterate, step, fValue)"""
        return (self.index, self.iterate, self.step, self.f_value)


class DiagnosticsSink(Protocol):
    """Приёмник per-iteration диагностики."""

    def record(self, record: IterationRecord) -> None:
        ...


class LoggingDiagnosticsSink:
    """Пишет каждую итерацию в stdlib logging."""

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        level: int = logging.DEBUG,
        digits: int = 10,
    ):
        self._logger = logger if logger is not None else logging.getLogger(__name__)
        self._level = level
        self._digits = digits

    def record(self, record: IterationRecord) -> None:
        if not self._logger.isEnabledFor(self._level):
            return
        self._logger.log(
            self._level,
            "iter=%d iterate=%s step=%s f=%s clamped=%s",
            record.index,
            format_exponential(record.iterate, self._digits),
            format_exponential(record.step, self._digits),
            format_exponential(record.f_value, self._digits),
            record.clamped,
        )


class RecordingDiagnosticsSink:
    """Накапливает записи в памяти (для тестов и трассировки)."""

    def __init__(self):
        self.records: List[IterationRecord] = []

    def record(self, record: IterationRecord) -> None:
        self.records.append(record)

    def as_tuples(self) -> list[tuple[int, Decimal, Decimal, Decimal]]:
        return [r.as_tuple() for r in self.records]

    def __len__(self) -> int:
        return len(self.records)
