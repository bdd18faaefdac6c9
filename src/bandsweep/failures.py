# Copyright (c) Syntropy Systems
"""Failure tracking and a-priori pruning of band combinations.

Three disjoint knowledge sets are kept:

- ``no_service``: bands that alone give no radio service. Any combination
  containing one of them is skipped.
- ``speedtest_failed``: bands that alone give service but no throughput. A
  combination is skipped only when it contains two or more of them; one such
  band may still be fine alongside others.
- ``skip``: combinations excluded outright.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, NamedTuple

from bandsweep.combos import is_singleton, split_identity

if TYPE_CHECKING:
    from collections.abc import Iterable

    from bandsweep.models.results import AttemptResult

logger = logging.getLogger(__name__)

REASON_NO_SERVICE = "no-service member"
REASON_MULTIPLE_SPEEDTEST_FAILED = "multiple speedtest-failed members"
REASON_EXPLICIT = "explicitly skipped"


class Outcome(str, Enum):
    """Classification of a recorded attempt."""

    OK = "ok"
    NO_SERVICE = "no_service"
    SPEEDTEST_FAILED = "speedtest_failed"


class SkipDecision(NamedTuple):
    """Answer to ``should_skip``: whether to skip and the reason tag."""

    skip: bool
    reason: str | None = None


def classify(result: AttemptResult) -> Outcome:
    """Classify a result the same way for live attempts and for replay."""
    if result.is_no_service:
        return Outcome.NO_SERVICE
    if result.download_speed <= 0 or result.upload_speed <= 0:
        return Outcome.SPEEDTEST_FAILED
    return Outcome.OK


def count_members_in(identity: str, bands: set[str]) -> int:
    """Count how many members of a combination are in ``bands``."""
    return sum(1 for band in split_identity(identity) if band in bands)


@dataclass
class FailureState:
    """Knowledge accumulated about failing bands during a campaign.

    Sets only grow. The orchestrator owns one instance and passes it around
    explicitly so tests can build arbitrary seeded states.
    """

    no_service: set[str] = field(default_factory=set)
    speedtest_failed: set[str] = field(default_factory=set)
    skip: set[str] = field(default_factory=set)

    def should_skip(self, identity: str) -> SkipDecision:
        """Decide whether a combination can be skipped without trying it."""
        members = split_identity(identity)
        for band in members:
            if band in self.no_service:
                return SkipDecision(skip=True, reason=REASON_NO_SERVICE)
        if count_members_in(identity, self.speedtest_failed) >= 2:  # noqa: PLR2004
            return SkipDecision(skip=True, reason=REASON_MULTIPLE_SPEEDTEST_FAILED)
        if identity in self.skip:
            return SkipDecision(skip=True, reason=REASON_EXPLICIT)
        return SkipDecision(skip=False)

    def mark_no_service(self, band: str, candidates: Iterable[str] = ()) -> list[str]:
        """Record a no-service band and skip every candidate containing it.

        Returns the candidates newly added to the skip set.
        """
        self.no_service.add(band)
        added: list[str] = []
        for identity in candidates:
            if identity == band or identity in self.skip:
                continue
            if band in split_identity(identity):
                self.skip.add(identity)
                added.append(identity)
        return added

    def mark_speedtest_failed(
        self, band: str, candidates: Iterable[str] = ()
    ) -> list[str]:
        """Record a soft-failed band and skip candidates now holding two such bands."""
        self.speedtest_failed.add(band)
        added: list[str] = []
        for identity in candidates:
            if identity == band or identity in self.skip:
                continue
            if count_members_in(identity, self.speedtest_failed) >= 2:  # noqa: PLR2004
                self.skip.add(identity)
                added.append(identity)
        return added

    def mark_skipped(self, identity: str) -> None:
        """Exclude a single combination."""
        self.skip.add(identity)

    def record(
        self, result: AttemptResult, candidates: Iterable[str] = ()
    ) -> Outcome:
        """Classify a result and update the knowledge sets accordingly.

        ``candidates`` is the campaign's combination universe; newly poisoned
        members of it are moved into the skip set immediately.
        """
        identity = result.band_combination
        outcome = classify(result)

        if outcome is Outcome.NO_SERVICE:
            if is_singleton(identity):
                added = self.mark_no_service(identity, candidates)
                logger.info(
                    "Band %s has no service; %d combination(s) will be skipped",
                    identity,
                    len(added),
                )
            else:
                self.mark_skipped(identity)
        elif outcome is Outcome.SPEEDTEST_FAILED and is_singleton(identity):
            added = self.mark_speedtest_failed(identity, candidates)
            logger.info(
                "Band %s failed the speed test; %d combination(s) will be skipped",
                identity,
                len(added),
            )

        return outcome

    @classmethod
    def from_results(
        cls, results: Iterable[AttemptResult], candidates: Iterable[str] = ()
    ) -> FailureState:
        """Rebuild the state by replaying each loaded result once, in order."""
        universe = list(candidates)
        state = cls()
        for result in results:
            _ = state.record(result, universe)
        return state

    def describe(self) -> str:
        """Short human-readable summary."""
        return (
            f"{len(self.no_service)} no-service bands, "
            f"{len(self.speedtest_failed)} speedtest-failed bands, "
            f"{len(self.skip)} skipped combinations"
        )
