"""Тесты для diagnostics sinks."""

import logging
from decimal import Decimal

from src.solver.diagnostics import IterationRecord, LoggingDiagnosticsSink, RecordingDiagnosticsSink


def _record(index: int = 0) -> IterationRecord:
    return IterationRecord(
        index=index,
        iterate=Decimal("0.5"),
        step=Decimal("0.125"),
        f_value=Decimal("-0.003"),
        raw_step=Decimal("0.25"),
        clamped=True,
    )


class TestIterationRecord:
    def test_as_tuple(self) -> None:
        assert _record(3).as_tuple() == (3, Decimal("0.5"), Decimal("0.125"), Decimal("-0.003"))


class TestRecordingSink:
    def test_accumulates(self) -> None:
        sink = RecordingDiagnosticsSink()
        sink.record(_record(0))
        sink.record(_record(1))
        assert len(sink) == 2
        assert [t[0] for t in sink.as_tuples()] == [0, 1]


class TestLoggingSink:
    def test_logs_each_iteration(self, caplog) -> None:
        logger = logging.getLogger("wbasket.test.diagnostics")
        caplog.set_level(logging.DEBUG, logger=logger.name)

        LoggingDiagnosticsSink(logger=logger, digits=3).record(_record(4))

        assert len(caplog.records) == 1
        message = caplog.records[0].getMessage()
        assert "iter=4" in message
        assert "iterate=5.000e-1" in message
        assert "f=-3.000e-3" in message
        assert "clamped=True" in message

    def test_silent_when_level_disabled(self, caplog) -> None:
        logger = logging.getLogger("wbasket.test.diagnostics.quiet")
        caplog.set_level(logging.INFO, logger=logger.name)

        LoggingDiagnosticsSink(logger=logger).record(_record())

        assert caplog.records == []
