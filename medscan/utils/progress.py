"""Progress reporting and cooperative cancellation primitives.

Progress is a one-way notification channel from a pipeline run to its
caller. Cancellation is cooperative: long-running stages poll a
:class:`CancellationToken` at loop boundaries.
"""

import queue
import threading
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from enum import StrEnum

from medscan.exceptions import Cancelled
from medscan.utils.logger import get_logger

logger = get_logger(__name__)


class Stage(StrEnum):
    """Pipeline stage labels, in emission order."""

    PREPROCESSING = "preprocessing"
    EXTRACTING = "extracting"
    ANALYZING = "analyzing"
    COMPLETE = "complete"


@dataclass(frozen=True)
class ProgressEvent:
    """A single progress notification."""

    stage: Stage
    percent: int


ProgressSink = Callable[[ProgressEvent], None]
FractionCallback = Callable[[float], None]


class CancellationToken:
    """Thread-safe cancellation signal shared between a caller and a run."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self.reason = "Processing cancelled"

    def cancel(self, reason: str | None = None) -> None:
        if reason:
            self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise :class:`Cancelled` if the token has been triggered."""
        if self._event.is_set():
            raise Cancelled(self.reason)


def check_cancelled(token: CancellationToken | None) -> None:
    """Poll an optional token."""
    if token is not None:
        token.raise_if_cancelled()


class ProgressReporter:
    """Wraps a caller's sink and keeps emitted percentages monotonic.

    Args:
        sink: Caller-supplied callable receiving :class:`ProgressEvent`.
            ``None`` disables reporting.
    """

    def __init__(self, sink: ProgressSink | None = None) -> None:
        self.sink = sink
        self.last_percent = 0
        self.events: list[ProgressEvent] = []

    def emit(self, stage: Stage, percent: float) -> None:
        """Send a progress event, never lowering the reported percent."""
        value = max(self.last_percent, min(100, int(round(percent))))
        self.last_percent = value
        event = ProgressEvent(stage=stage, percent=value)
        self.events.append(event)
        if self.sink is None:
            return
        try:
            self.sink(event)
        except Exception as exc:
            logger.warning("Progress sink raised %s, continuing", exc)

    def window(self, stage: Stage, start: float, end: float) -> FractionCallback:
        """Map a stage-local fraction in [0, 1] onto ``[start, end]`` percent.

        Args:
            stage: Stage label for the emitted events.
            start: Global percent at fraction 0.
            end: Global percent at fraction 1.

        Returns:
            Callback accepting a fraction.
        """

        def report(fraction: float) -> None:
            fraction = min(1.0, max(0.0, fraction))
            self.emit(stage, start + (end - start) * fraction)

        return report


_CLOSED = object()


class ProgressStream:
    """Queue-backed progress sink that a caller can iterate over.

    The pipeline calls the stream like any other sink; a consumer on
    another thread drains it with a ``for`` loop until :meth:`close`.

    Example:
        >>> stream = ProgressStream()
        >>> stream(ProgressEvent(Stage.COMPLETE, 100))
        >>> stream.close()
        >>> [e.percent for e in stream]
        [100]
    """

    def __init__(self) -> None:
        self._queue: queue.SimpleQueue[object] = queue.SimpleQueue()

    def __call__(self, event: ProgressEvent) -> None:
        self._queue.put(event)

    def close(self) -> None:
        self._queue.put(_CLOSED)

    def __iter__(self) -> Iterator[ProgressEvent]:
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                return
            yield item  # type: ignore[misc]
