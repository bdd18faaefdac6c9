# Copyright (c) Syntropy Systems
"""Pydantic models for attempt results and campaign progress.

Field aliases match the camelCase keys written by earlier campaigns so that an
old progress file can still be resumed.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import Field

from .base import BandsweepBaseModel, FrozenRecord

NOT_AVAILABLE = "N/A"


def utcnow() -> str:
    """Get current UTC time as ISO format string."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class SignalMetrics(FrozenRecord):
    """Signal quality as reported by the router. Values are opaque strings."""

    band: str = ""
    rsrp: str = ""
    rsrq: str = ""
    sinr: str = ""
    cell_id: str = Field(default="", alias="cellId")
    enb_id: str = Field(default="", alias="enbId")


class ThroughputResult(FrozenRecord):
    """Speed measurement in Mbps and milliseconds. Zero means not measured."""

    download: float = 0.0
    upload: float = 0.0
    ping: float = 0.0

    @property
    def failed(self) -> bool:
        """Return whether either direction produced no throughput."""
        return self.download <= 0 or self.upload <= 0


class AttemptResult(FrozenRecord):
    """One evaluated band combination."""

    timestamp: str = Field(default_factory=utcnow)
    band: str = ""
    band_combination: str = Field(alias="bandCombination")
    rsrp: str = ""
    rsrq: str = ""
    sinr: str = ""
    enb_id: str = Field(default="", alias="enbId")
    cell_id: str = Field(default="", alias="cellId")
    download_speed: float = Field(default=0.0, alias="downloadSpeed")
    upload_speed: float = Field(default=0.0, alias="uploadSpeed")
    ping: float = 0.0
    test_duration: float = Field(default=0.0, alias="testDuration")

    @classmethod
    def no_service(cls, identity: str, timestamp: str | None = None) -> AttemptResult:
        """Build the zero-valued result recorded when a combination has no service."""
        return cls(
            timestamp=timestamp or utcnow(),
            band=identity,
            band_combination=identity,
            rsrp=NOT_AVAILABLE,
            rsrq=NOT_AVAILABLE,
            sinr=NOT_AVAILABLE,
            enb_id=NOT_AVAILABLE,
            cell_id=NOT_AVAILABLE,
        )

    @classmethod
    def from_measurement(
        cls,
        identity: str,
        signal: SignalMetrics,
        throughput: ThroughputResult,
        duration: float,
    ) -> AttemptResult:
        """Combine signal and throughput readings into a result."""
        return cls(
            band=signal.band,
            band_combination=identity,
            rsrp=signal.rsrp,
            rsrq=signal.rsrq,
            sinr=signal.sinr,
            enb_id=signal.enb_id,
            cell_id=signal.cell_id,
            download_speed=throughput.download,
            upload_speed=throughput.upload,
            ping=throughput.ping,
            test_duration=duration,
        )

    @property
    def is_no_service(self) -> bool:
        """Return whether this result records a no-service outcome."""
        return self.rsrp == NOT_AVAILABLE and self.rsrq == NOT_AVAILABLE

    @property
    def combined_speed(self) -> float:
        """Download plus upload in Mbps."""
        return self.download_speed + self.upload_speed

    @property
    def sinr_value(self) -> float | None:
        """SINR parsed as a number, or None when the router reported text."""
        text = self.sinr.strip().lower().removesuffix("db").strip()
        try:
            return float(text)
        except ValueError:
            return None


class Progress(BandsweepBaseModel):
    """Durable campaign snapshot: results plus every identity already attempted."""

    completed_combinations: list[str] = Field(
        default_factory=list, alias="completedCombinations"
    )
    results: list[AttemptResult] = Field(default_factory=list)
    last_updated: str = Field(default_factory=utcnow, alias="lastUpdated")

    def mark_attempted(self, identity: str) -> None:
        """Record an identity as resolved so a resumed run does not repeat it."""
        if identity not in self.completed_combinations:
            self.completed_combinations.append(identity)

    def add_result(self, result: AttemptResult) -> None:
        """Append a result and mark its combination as attempted."""
        self.results.append(result)
        self.mark_attempted(result.band_combination)
