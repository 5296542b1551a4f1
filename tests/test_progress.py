"""Tests for progress reporting and cancellation tokens."""

import threading

import pytest

from medscan.exceptions import Cancelled
from medscan.utils.progress import (
    CancellationToken,
    ProgressEvent,
    ProgressReporter,
    ProgressStream,
    Stage,
    check_cancelled,
)


class TestProgressReporter:
    """Tests for the monotonic progress reporter."""

    def test_emits_to_sink(self) -> None:
        received: list[ProgressEvent] = []
        reporter = ProgressReporter(received.append)
        reporter.emit(Stage.PREPROCESSING, 10)
        reporter.emit(Stage.COMPLETE, 100)
        assert received == [
            ProgressEvent(Stage.PREPROCESSING, 10),
            ProgressEvent(Stage.COMPLETE, 100),
        ]

    def test_percent_never_decreases(self) -> None:
        reporter = ProgressReporter()
        reporter.emit(Stage.EXTRACTING, 50)
        reporter.emit(Stage.EXTRACTING, 40)
        reporter.emit(Stage.ANALYZING, 150)
        assert [e.percent for e in reporter.events] == [50, 50, 100]

    def test_window_maps_fractions(self) -> None:
        reporter = ProgressReporter()
        report = reporter.window(Stage.EXTRACTING, 30, 80)
        report(0.0)
        report(0.5)
        report(2.0)
        assert [e.percent for e in reporter.events] == [30, 55, 80]
        assert all(e.stage is Stage.EXTRACTING for e in reporter.events)

    def test_failing_sink_does_not_stop_reporting(self) -> None:
        def broken(event: ProgressEvent) -> None:
            raise RuntimeError("listener gone")

        reporter = ProgressReporter(broken)
        reporter.emit(Stage.PREPROCESSING, 10)
        reporter.emit(Stage.COMPLETE, 100)
        assert len(reporter.events) == 2


class TestProgressStream:
    """Tests for the iterable progress sink."""

    def test_drains_events_from_another_thread(self) -> None:
        stream = ProgressStream()

        def produce() -> None:
            for percent in (10, 30, 100):
                stream(ProgressEvent(Stage.EXTRACTING, percent))
            stream.close()

        worker = threading.Thread(target=produce)
        worker.start()
        percents = [event.percent for event in stream]
        worker.join()

        assert percents == [10, 30, 100]


class TestCancellationToken:
    """Tests for cooperative cancellation."""

    def test_initially_not_cancelled(self) -> None:
        token = CancellationToken()
        assert token.cancelled is False
        token.raise_if_cancelled()

    def test_cancel_with_reason(self) -> None:
        token = CancellationToken()
        token.cancel("user aborted")
        assert token.cancelled is True
        with pytest.raises(Cancelled, match="user aborted"):
            token.raise_if_cancelled()

    def test_check_cancelled_accepts_none(self) -> None:
        check_cancelled(None)

    def test_check_cancelled_raises(self) -> None:
        token = CancellationToken()
        token.cancel()
        with pytest.raises(Cancelled, match="Processing cancelled"):
            check_cancelled(token)
