"""Metrics hook protocol and no-op default implementation.

guestlens emits counters and timings at key points of the submission and
moderation pipeline.  By default a :class:`NoopMetricsHook` is used; pass
any object satisfying :class:`MetricsHook` as ``GuestlensConfig.metrics``
to route the data points to StatsD, Prometheus or similar.

Emitted metric names:

* ``guestlens.requests_total``              -- counter
* ``guestlens.retries_total``               -- counter
* ``guestlens.request_duration_ms``         -- timing
* ``guestlens.upload_success_total``        -- counter
* ``guestlens.upload_failure_total``        -- counter
* ``guestlens.registration_failure_total``  -- counter
* ``guestlens.moderation_decisions_total``  -- counter
* ``guestlens.moderation_queue_depth``      -- gauge
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class MetricsHook(Protocol):
    """Protocol that any metrics backend must satisfy.

    All methods accept an optional *tags* dict of string keys and values.
    """

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Increment a counter metric."""
        ...

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Record a duration in milliseconds."""
        ...

    def gauge(
        self,
        name: str,
        value: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Set a gauge metric to an absolute value."""
        ...


class NoopMetricsHook:
    """Default metrics implementation that discards all data points."""

    __slots__ = ()

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass

    def gauge(
        self,
        name: str,
        value: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass


def resolve_metrics(metrics: object | None) -> MetricsHook:
    """Return *metrics* or a :class:`NoopMetricsHook` when it is ``None``."""
    return metrics if metrics is not None else NoopMetricsHook()  # type: ignore[return-value]
