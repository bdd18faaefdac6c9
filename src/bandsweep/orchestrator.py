# Copyright (c) Syntropy Systems
"""Campaign orchestration: one band combination at a time.

Each combination moves through an explicit state machine::

    PENDING -> SKIPPED
    PENDING -> CONFIGURING -> MEASURING -> RECORDED
    PENDING -> CONFIGURING (retry 1..R) -> ABANDONED
    CONFIGURING | MEASURING -> INTERRUPTED  (stop during a wait)

After every resolved combination the failure state is updated and the full
progress snapshot is rewritten, so an interruption loses at most the attempt
in flight. A stop request during a wait interrupts the combination: it is
neither measured nor marked attempted, so a resumed campaign tries it again.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from threading import Event
from typing import TYPE_CHECKING

from bandsweep.combos import plan_combinations
from bandsweep.errors import (
    AdapterTimeoutError,
    DeviceError,
    InvalidTransitionError,
    ProgressLoadError,
    ProgressSaveError,
)
from bandsweep.failures import REASON_NO_SERVICE, FailureState, Outcome
from bandsweep.models.results import (
    AttemptResult,
    Progress,
    SignalMetrics,
    ThroughputResult,
)
from bandsweep.progress import ProgressStore

if TYPE_CHECKING:
    from collections.abc import Callable

    from bandsweep.adapters.base import DeviceAdapter, MetricsAdapter
    from bandsweep.combos import CampaignPlan
    from bandsweep.config import CampaignConfig

logger = logging.getLogger(__name__)


class AttemptState(str, Enum):
    """Lifecycle of one combination within a campaign."""

    PENDING = "pending"
    CONFIGURING = "configuring"
    MEASURING = "measuring"
    SKIPPED = "skipped"
    RECORDED = "recorded"
    ABANDONED = "abandoned"
    INTERRUPTED = "interrupted"

    @property
    def terminal(self) -> bool:
        """Return whether no further transitions are possible."""
        return self in TERMINAL_STATES


class AttemptEvent(str, Enum):
    """Inputs to the attempt state machine."""

    SKIP = "skip"
    BEGIN = "begin"
    APPLY_OK = "apply_ok"
    APPLY_FAILED = "apply_failed"
    RETRIES_EXHAUSTED = "retries_exhausted"
    NO_SERVICE = "no_service"
    MEASURED = "measured"
    STOP = "stop"


TERMINAL_STATES = frozenset(
    {
        AttemptState.SKIPPED,
        AttemptState.RECORDED,
        AttemptState.ABANDONED,
        AttemptState.INTERRUPTED,
    }
)

_TRANSITIONS: dict[tuple[AttemptState, AttemptEvent], AttemptState] = {
    (AttemptState.PENDING, AttemptEvent.SKIP): AttemptState.SKIPPED,
    (AttemptState.PENDING, AttemptEvent.BEGIN): AttemptState.CONFIGURING,
    (AttemptState.CONFIGURING, AttemptEvent.APPLY_OK): AttemptState.MEASURING,
    (AttemptState.CONFIGURING, AttemptEvent.APPLY_FAILED): AttemptState.CONFIGURING,
    (AttemptState.CONFIGURING, AttemptEvent.RETRIES_EXHAUSTED): AttemptState.ABANDONED,
    (AttemptState.CONFIGURING, AttemptEvent.STOP): AttemptState.INTERRUPTED,
    (AttemptState.MEASURING, AttemptEvent.NO_SERVICE): AttemptState.RECORDED,
    (AttemptState.MEASURING, AttemptEvent.MEASURED): AttemptState.RECORDED,
    (AttemptState.MEASURING, AttemptEvent.STOP): AttemptState.INTERRUPTED,
}


def transition(state: AttemptState, event: AttemptEvent) -> AttemptState:
    """Return the next state, or raise InvalidTransitionError."""
    try:
        return _TRANSITIONS[(state, event)]
    except KeyError:
        msg = f"No transition from {state.value} on {event.value}"
        raise InvalidTransitionError(msg) from None


@dataclass
class AttemptRecord:
    """What happened to one combination."""

    identity: str
    state: AttemptState = AttemptState.PENDING
    apply_attempts: int = 0
    result: AttemptResult | None = None
    outcome: Outcome | None = None
    reason: str | None = None

    def advance(self, event: AttemptEvent) -> AttemptState:
        """Apply an event and return the new state."""
        self.state = transition(self.state, event)
        return self.state


@dataclass
class CampaignSummary:
    """End-of-campaign totals handed to reporting."""

    results: list[AttemptResult]
    failures: FailureState
    recorded: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    abandoned: list[str] = field(default_factory=list)
    interrupted: bool = False
    progress_removed: bool = False


class Orchestrator:
    """Runs a campaign against a device and a metrics source.

    Waits go through ``sleep``, by default a wait on ``stop_event`` so a stop
    request cuts them short. ``stop_event`` also ends the campaign between
    attempts.
    """

    config: CampaignConfig
    device: DeviceAdapter
    metrics: MetricsAdapter
    store: ProgressStore
    stop_event: Event
    progress: Progress
    failures: FailureState
    plan: CampaignPlan | None
    _sleep: Callable[[float], None]
    _clock: Callable[[], float]
    _reporter: Callable[[list[AttemptResult]], None] | None
    listener: Callable[[AttemptRecord], None] | None

    def __init__(  # noqa: PLR0913
        self,
        config: CampaignConfig,
        device: DeviceAdapter,
        metrics: MetricsAdapter,
        *,
        store: ProgressStore | None = None,
        reporter: Callable[[list[AttemptResult]], None] | None = None,
        listener: Callable[[AttemptRecord], None] | None = None,
        stop_event: Event | None = None,
        sleep: Callable[[float], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config
        self.device = device
        self.metrics = metrics
        self.store = store or ProgressStore(config.progress_file)
        self.stop_event = stop_event or Event()
        self.progress = Progress()
        self.failures = FailureState()
        self.plan = None
        self._sleep = sleep or self._wait
        self._clock = clock
        self._reporter = reporter
        self.listener = listener

    def _wait(self, seconds: float) -> None:
        _ = self.stop_event.wait(seconds)

    def _interrupted(self, record: AttemptRecord) -> bool:
        """Move the record to INTERRUPTED if a stop arrived during a wait."""
        if not self.stop_event.is_set():
            return False
        _ = record.advance(AttemptEvent.STOP)
        logger.warning(
            "Stop requested while waiting on %s; it will be retried on resume",
            record.identity,
        )
        return True

    # --- Setup ---

    def _load_progress(self) -> Progress:
        if not self.config.resume:
            return Progress()
        try:
            loaded = self.store.load()
        except ProgressLoadError as e:
            logger.warning("%s; starting fresh", e)
            return Progress()
        if loaded is None:
            logger.info("No saved progress found; starting fresh")
            return Progress()
        return loaded

    def prepare(self) -> CampaignPlan:
        """Load progress (when resuming), build the work list, seed failures."""
        config = self.config
        self.progress = self._load_progress()
        self.plan = plan_combinations(
            config.bands,
            config.max_bands,
            include_auto=config.include_auto,
            include=config.include_bands,
            exclude=config.exclude_bands,
            limit=config.limit,
            shuffle=config.shuffle,
            seed=config.shuffle_seed,
            attempted=self.progress.completed_combinations,
        )
        self.failures = FailureState.from_results(
            self.progress.results, self.plan.universe
        )
        if self.progress.results:
            logger.info(
                "Resuming with %d previous results (%s)",
                len(self.progress.results),
                self.failures.describe(),
            )
        return self.plan

    # --- Persistence ---

    def _persist(self) -> None:
        """Save progress and reports; a failed save is retried next cycle."""
        try:
            self.store.save(self.progress)
        except ProgressSaveError as e:
            logger.error("%s; will retry after the next attempt", e)  # noqa: TRY400
        self._write_reports(strict=False)

    def _write_reports(self, *, strict: bool) -> None:
        if self._reporter is None:
            return
        try:
            self._reporter(list(self.progress.results))
        except OSError as e:
            if strict:
                raise
            logger.warning("Could not write report: %s", e)

    def flush(self) -> None:
        """Final save of progress and reports. Errors propagate."""
        self.store.save(self.progress)
        self._write_reports(strict=True)

    # --- One combination ---

    def _configure(self, record: AttemptRecord) -> None:
        """Apply the combination with up to ``retries`` extra attempts."""
        retries = self.config.retries
        while True:
            record.apply_attempts += 1
            try:
                self.device.apply_configuration(record.identity)
            except (DeviceError, AdapterTimeoutError) as e:
                if record.apply_attempts > retries:
                    logger.error(  # noqa: TRY400
                        "Failed to set %s after %d attempts: %s",
                        record.identity,
                        record.apply_attempts,
                        e,
                    )
                    _ = record.advance(AttemptEvent.RETRIES_EXHAUSTED)
                    return
                logger.warning(
                    "Setting %s failed (%s); retry %d/%d",
                    record.identity,
                    e,
                    record.apply_attempts,
                    retries,
                )
                _ = record.advance(AttemptEvent.APPLY_FAILED)
                self._sleep(self.config.settle_time)
                if self._interrupted(record):
                    return
                try:
                    self.device.reset_session()
                except (DeviceError, AdapterTimeoutError) as reset_error:
                    logger.warning("Session reset failed: %s", reset_error)
                continue
            _ = record.advance(AttemptEvent.APPLY_OK)
            return

    def _read_no_service(self) -> bool:
        try:
            return self.device.read_no_service_indicator()
        except AdapterTimeoutError as e:
            logger.warning("Service indicator unavailable: %s", e)
            return False

    def _read_signal(self) -> SignalMetrics:
        try:
            return self.metrics.read_signal_metrics()
        except AdapterTimeoutError as e:
            logger.warning("Signal metrics unavailable: %s", e)
            return SignalMetrics()

    def _measure(self, record: AttemptRecord) -> None:
        identity = record.identity
        if self._read_no_service():
            logger.info("No service for %s", identity)
            record.result = AttemptResult.no_service(identity)
            _ = record.advance(AttemptEvent.NO_SERVICE)
            return

        signal = self._read_signal()
        logger.info(
            "Signal for %s: RSRP %s, RSRQ %s, SINR %s, eNB %s",
            identity,
            signal.rsrp,
            signal.rsrq,
            signal.sinr,
            signal.enb_id,
        )

        started = self._clock()
        try:
            throughput = self.metrics.measure_throughput()
        except AdapterTimeoutError as e:
            logger.warning("Speed test timed out for %s: %s", identity, e)
            throughput = ThroughputResult()
        duration = self._clock() - started

        if throughput.failed:
            logger.info("Speed test failed for %s: no download or upload", identity)

        record.result = AttemptResult.from_measurement(
            identity, signal, throughput, duration
        )
        _ = record.advance(AttemptEvent.MEASURED)

    def attempt(self, identity: str) -> AttemptRecord:
        """Drive one combination to a terminal state and persist the outcome."""
        record = AttemptRecord(identity=identity)
        universe = self.plan.universe if self.plan is not None else []

        decision = self.failures.should_skip(identity)
        if decision.skip:
            record.reason = decision.reason
            _ = record.advance(AttemptEvent.SKIP)
            logger.info("Skipping %s: %s", identity, decision.reason)
            if decision.reason == REASON_NO_SERVICE:
                record.result = AttemptResult.no_service(identity)
                record.outcome = self.failures.record(record.result, universe)
                self.progress.add_result(record.result)
            else:
                self.progress.mark_attempted(identity)
            self._persist()
            return record

        _ = record.advance(AttemptEvent.BEGIN)
        self._configure(record)

        if record.state is AttemptState.INTERRUPTED:
            return record

        if record.state is AttemptState.ABANDONED:
            self.progress.mark_attempted(identity)
            self._persist()
            return record

        logger.info(
            "Waiting %.0f seconds for %s to stabilize", self.config.wait_time, identity
        )
        self._sleep(self.config.wait_time)
        if self._interrupted(record):
            return record

        self._measure(record)
        if record.result is None:
            msg = f"Measurement of {identity} produced no result"
            raise InvalidTransitionError(msg)
        record.outcome = self.failures.record(record.result, universe)
        self.progress.add_result(record.result)
        self._persist()

        result = record.result
        logger.info(
            "%s: %.2f Mbps down, %.2f Mbps up, %.0f ms ping (%s)",
            identity,
            result.download_speed,
            result.upload_speed,
            result.ping,
            record.outcome.value,
        )
        return record

    # --- Campaign ---

    def run(self) -> CampaignSummary:
        """Run every planned combination, then flush and clean up.

        Any unexpected error flushes progress and reports before propagating.
        """
        plan = self.plan if self.plan is not None else self.prepare()
        summary = CampaignSummary(
            results=self.progress.results, failures=self.failures
        )

        try:
            for index, identity in enumerate(plan.combinations, 1):
                if self.stop_event.is_set():
                    summary.interrupted = True
                    logger.warning("Stop requested; ending campaign early")
                    break

                logger.info(
                    "Combination %d/%d: %s", index, len(plan.combinations), identity
                )
                record = self.attempt(identity)

                if record.state is AttemptState.INTERRUPTED:
                    summary.interrupted = True
                    break

                if record.state is AttemptState.RECORDED:
                    summary.recorded.append(identity)
                elif record.state is AttemptState.SKIPPED:
                    summary.skipped.append(identity)
                else:
                    summary.abandoned.append(identity)

                if self.listener is not None:
                    self.listener(record)

                logger.debug("Current status: %s", self.failures.describe())
        except BaseException:
            logger.error(  # noqa: TRY400
                "Campaign aborted; saving progress to %s", self.store.path
            )
            try:
                self.flush()
            except (ProgressSaveError, OSError) as flush_error:
                logger.error("Could not save progress: %s", flush_error)  # noqa: TRY400
            raise

        self.flush()

        if not (summary.interrupted or plan.is_partial or summary.abandoned):
            summary.progress_removed = self.store.delete()

        return summary
