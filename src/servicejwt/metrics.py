"""Timer interface used for request instrumentation.

A timer is anything with ``start_timer(labels)`` returning a callable that
stops it, optionally with extra labels. This matches the shape of a
Prometheus-style histogram timer, so real metrics backends plug in through
:class:`HistogramTimer` and everything else defaults to :data:`NOOP_TIMER`.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping, Sequence
from typing import Any, Protocol

from prometheus_client import Histogram

StopTimer = Callable[..., Any]


class Timer(Protocol):
    def start_timer(self, labels: Mapping[str, Any] | None = None) -> StopTimer: ...


class NoopTimer:
    """Timer that records nothing."""

    def start_timer(self, labels: Mapping[str, Any] | None = None) -> StopTimer:
        def _stop(extra: Mapping[str, Any] | None = None) -> dict[str, Any]:
            return {}

        return _stop


NOOP_TIMER = NoopTimer()


class HistogramTimer:
    """Adapts a :class:`prometheus_client.Histogram` to :class:`Timer`.

    Labels given at start and stop are merged; only the histogram's own
    label names are kept, missing ones are recorded as ``""``.

    Parameters
    ----------
    histogram : Histogram
        Histogram declared with *labelnames*.
    labelnames : sequence of str
        The label names *histogram* was declared with.
    """

    def __init__(self, histogram: Histogram, labelnames: Sequence[str] = ()) -> None:
        self._histogram = histogram
        self._labelnames = tuple(labelnames)

    def start_timer(self, labels: Mapping[str, Any] | None = None) -> StopTimer:
        started = time.perf_counter()
        base = dict(labels or {})

        def _stop(extra: Mapping[str, Any] | None = None) -> float:
            elapsed = time.perf_counter() - started
            merged = {**base, **(extra or {})}
            if self._labelnames:
                values = {name: str(merged.get(name, "")) for name in self._labelnames}
                self._histogram.labels(**values).observe(elapsed)
            else:
                self._histogram.observe(elapsed)
            return elapsed

        return _stop
