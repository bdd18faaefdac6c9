# Copyright (c) Syntropy Systems
"""Interfaces the orchestrator drives."""
from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from bandsweep.models.results import SignalMetrics, ThroughputResult


class DeviceAdapter(Protocol):
    """Applies band configurations to the router.

    Every method must be safe to call again after a failure.
    """

    def apply_configuration(self, identity: str) -> None:
        """Apply a combination; raise ``DeviceError`` or ``AdapterTimeoutError``."""
        ...

    def read_no_service_indicator(self) -> bool:
        """Return True when the router reports no radio service."""
        ...

    def reset_session(self) -> None:
        """Re-establish session state before a retry."""
        ...


class MetricsAdapter(Protocol):
    """Reads signal quality and measures throughput."""

    def read_signal_metrics(self) -> SignalMetrics:
        """Return the current signal readings."""
        ...

    def measure_throughput(self) -> ThroughputResult:
        """Run a speed test. Zeros on failure; raises only for transport errors."""
        ...


class _SignalSource(Protocol):
    def read_signal_metrics(self) -> SignalMetrics:
        ...


class _ThroughputSource(Protocol):
    def measure_throughput(self) -> ThroughputResult:
        ...


class CompositeMetrics:
    """Metrics adapter built from a signal source and a throughput source."""

    signal: _SignalSource
    throughput: _ThroughputSource

    def __init__(self, signal: _SignalSource, throughput: _ThroughputSource) -> None:
        self.signal = signal
        self.throughput = throughput

    def read_signal_metrics(self) -> SignalMetrics:
        """Delegate to the signal source."""
        return self.signal.read_signal_metrics()

    def measure_throughput(self) -> ThroughputResult:
        """Delegate to the throughput source."""
        return self.throughput.measure_throughput()
