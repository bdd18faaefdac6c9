# Copyright (c) Syntropy Systems
"""Pydantic models for bandsweep records."""

from bandsweep.models.results import (
    AttemptResult,
    Progress,
    SignalMetrics,
    ThroughputResult,
)

__all__ = ["AttemptResult", "Progress", "SignalMetrics", "ThroughputResult"]
