"""Timing helpers that feed the processing latency series."""

from __future__ import annotations

import logging
import time
from types import TracebackType
from typing import Callable

from status_analytics.metrics.registry import (
    MetricsRegistry,
    OperationStatus,
    ProcessingOperation,
    get_metrics_registry,
)

logger = logging.getLogger(__name__)


class OperationTimer:
    """Measure one operation and record it exactly once.

    Either call ``end(status)`` on every exit path, or use the timer as a
    context manager::

        with OperationTimer("create") as timer:
            ...

    which ends with ``"error"`` when the block raises and ``"success"``
    otherwise.
    """

    def __init__(
        self,
        operation: ProcessingOperation,
        registry: MetricsRegistry | None = None,
    ) -> None:
        self.operation = operation
        self._registry = registry
        self._start = time.perf_counter()
        self._recorded: float | None = None

    @property
    def ended(self) -> bool:
        return self._recorded is not None

    def get_elapsed_seconds(self) -> float:
        """Elapsed seconds since start, without recording anything."""
        return time.perf_counter() - self._start

    def end(self, status: OperationStatus) -> float:
        """Stop the timer, record the latency under ``status`` and return it."""
        if self._recorded is not None:
            logger.warning(
                "OperationTimer for %s already ended; ignoring end(%s)", self.operation, status
            )
            return self._recorded
        elapsed = self.get_elapsed_seconds()
        self._recorded = elapsed
        registry = self._registry if self._registry is not None else get_metrics_registry()
        registry.record_processing_latency(self.operation, status, elapsed)
        return elapsed

    def __enter__(self) -> "OperationTimer":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if not self.ended:
            self.end("error" if exc_type is not None else "success")


def create_operation_timer(
    operation: ProcessingOperation, registry: MetricsRegistry | None = None
) -> OperationTimer:
    return OperationTimer(operation, registry=registry)


def start_stopwatch() -> Callable[[], float]:
    """Return a callable giving the seconds elapsed since this call."""
    start = time.perf_counter()

    def elapsed() -> float:
        return time.perf_counter() - start

    return elapsed
