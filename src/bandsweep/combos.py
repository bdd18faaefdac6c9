# Copyright (c) Syntropy Systems
"""Band combination generation and campaign planning."""
from __future__ import annotations

import itertools
import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable, Sequence

AUTO = "AUTO"
SEPARATOR = "+"

# Rough per-attempt cost on top of the stabilization wait (speedtest + reads)
MEASUREMENT_OVERHEAD_S = 120

DEFAULT_BANDS: tuple[str, ...] = (
    "1",
    "3",
    "7",
    "8",
    "20",
    "28",
    "32",
    "34",
    "38",
    "39",
    "40",
    "41",
    "42",
    "43",
)


def _band_key(band: str) -> tuple[int, str]:
    try:
        return (int(band), band)
    except ValueError:
        return (2**31, band)


def canonical_identity(bands: Iterable[str]) -> str:
    """Return the order-independent identity of a set of bands.

    Members are de-duplicated and sorted numerically: ``{"3", "1"}`` -> ``"1+3"``.
    """
    members = sorted({band.strip() for band in bands if band.strip()}, key=_band_key)
    if not members:
        msg = "A combination needs at least one band"
        raise ValueError(msg)
    return SEPARATOR.join(members)


def split_identity(identity: str) -> list[str]:
    """Return the member bands of a combination. AUTO has no members."""
    if identity == AUTO:
        return []
    return identity.split(SEPARATOR)


def group_size(identity: str) -> int:
    """Number of bands in a combination; AUTO sorts with the singletons."""
    if identity == AUTO:
        return 1
    return len(split_identity(identity))


def is_singleton(identity: str) -> bool:
    """Return whether the identity names exactly one real band."""
    return identity != AUTO and SEPARATOR not in identity


def generate_combinations(
    catalog: Sequence[str],
    max_size: int,
    *,
    include_auto: bool = False,
) -> list[str]:
    """Enumerate every combination of 1..max_size bands from the catalog.

    Singletons come first in catalog order, then each larger size in
    lexicographic order of catalog index positions. The result is
    deterministic, which keeps identities stable across resumed runs.
    """
    combos: list[str] = []
    if max_size >= 1 and catalog:
        seen: set[str] = set()
        for size in range(1, min(max_size, len(catalog)) + 1):
            for members in itertools.combinations(catalog, size):
                identity = canonical_identity(members)
                if identity not in seen:
                    seen.add(identity)
                    combos.append(identity)

    if include_auto:
        combos.append(AUTO)

    return combos


def apply_filters(
    combos: Iterable[str],
    include: Collection[str] | None = None,
    exclude: Collection[str] | None = None,
) -> list[str]:
    """Keep combinations touching an included band and none of the excluded ones."""
    result = list(combos)
    if include:
        wanted = set(include)
        result = [c for c in result if wanted.intersection(split_identity(c))]
    if exclude:
        unwanted = set(exclude)
        result = [c for c in result if not unwanted.intersection(split_identity(c))]
    return result


def sort_by_group_size(combos: Iterable[str]) -> list[str]:
    """Stable sort so every singleton runs before any larger combination."""
    return sorted(combos, key=group_size)


@dataclass
class CampaignPlan:
    """Ordered work list for one campaign.

    ``universe`` is every combination in scope before already-attempted ones
    were dropped; failure propagation runs over it so a resumed campaign
    derives the same skip set as an uninterrupted one.
    """

    combinations: list[str]
    total_generated: int
    universe: list[str] = field(default_factory=list)
    already_attempted: int = 0
    is_partial: bool = False
    notes: list[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.combinations)


def plan_combinations(  # noqa: PLR0913
    catalog: Sequence[str],
    max_size: int,
    *,
    include_auto: bool = False,
    include: Collection[str] | None = None,
    exclude: Collection[str] | None = None,
    limit: int = 0,
    shuffle: bool = False,
    seed: int | None = None,
    attempted: Collection[str] = (),
) -> CampaignPlan:
    """Build the work list: generate, filter, shuffle, limit, drop attempted, sort.

    ``is_partial`` is set whenever a filter or limit narrowed the space, in
    which case the progress file must survive the campaign.
    """
    generated = generate_combinations(catalog, max_size, include_auto=include_auto)
    combos = apply_filters(generated, include, exclude)
    notes: list[str] = []
    is_partial = len(combos) != len(generated)
    if is_partial:
        notes.append(f"filters kept {len(combos)} of {len(generated)}")

    if shuffle:
        random.Random(seed).shuffle(combos)  # noqa: S311

    if 0 < limit < len(combos):
        notes.append(f"limited to {limit} of {len(combos)}")
        combos = combos[:limit]
        is_partial = True

    done = set(attempted)
    remaining = [c for c in combos if c not in done]
    skipped = len(combos) - len(remaining)
    if skipped:
        notes.append(f"{skipped} already attempted")

    return CampaignPlan(
        combinations=sort_by_group_size(remaining),
        total_generated=len(generated),
        universe=combos,
        already_attempted=skipped,
        is_partial=is_partial,
        notes=notes,
    )


def estimate_duration(count: int, wait_time: float) -> tuple[int, int]:
    """Estimate campaign length as (hours, minutes)."""
    total = int(count * (wait_time + MEASUREMENT_OVERHEAD_S))
    return total // 3600, (total % 3600) // 60


def parse_band_list(value: str | None) -> list[str]:
    """Parse a comma-separated band list such as ``"1, 3,20"``."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]
