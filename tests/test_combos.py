# Copyright (c) Syntropy Systems
"""Tests for combination generation and campaign planning."""

from math import comb

import pytest

from bandsweep.combos import (
    AUTO,
    DEFAULT_BANDS,
    canonical_identity,
    estimate_duration,
    generate_combinations,
    group_size,
    is_singleton,
    parse_band_list,
    plan_combinations,
    split_identity,
)


class TestIdentity:
    """Tests for canonical identities."""

    def test_order_independent(self):
        """Same set in any order gives the same identity."""
        assert canonical_identity(["20", "3", "1"]) == "1+3+20"
        assert canonical_identity(["1", "20", "3"]) == "1+3+20"

    def test_sorted_numerically(self):
        """Band 3 sorts before band 20."""
        assert canonical_identity(["20", "3"]) == "3+20"

    def test_duplicates_collapse(self):
        assert canonical_identity(["3", "3"]) == "3"

    def test_empty_rejected(self):
        with pytest.raises(ValueError):
            canonical_identity([])

    def test_split_and_size(self):
        assert split_identity("1+3+20") == ["1", "3", "20"]
        assert split_identity(AUTO) == []
        assert group_size("1+3") == 2
        assert group_size(AUTO) == 1
        assert is_singleton("7")
        assert not is_singleton("1+7")
        assert not is_singleton(AUTO)


class TestGenerate:
    """Tests for generate_combinations."""

    def test_small_catalog_order(self):
        """Singletons in catalog order, then pairs by index position."""
        combos = generate_combinations(["1", "3", "20"], 2)

        assert combos == ["1", "3", "20", "1+3", "1+20", "3+20"]

    @pytest.mark.parametrize("max_size", [1, 2, 3, 4])
    def test_count_matches_binomial_sum(self, max_size):
        """Default catalog yields sum of C(N, s) for s in 1..K."""
        combos = generate_combinations(DEFAULT_BANDS, max_size)
        n = len(DEFAULT_BANDS)

        assert len(combos) == sum(comb(n, s) for s in range(1, max_size + 1))
        assert len(set(combos)) == len(combos)

    def test_max_size_larger_than_catalog(self):
        combos = generate_combinations(["1", "3"], 5)

        assert combos == ["1", "3", "1+3"]

    def test_zero_size_is_empty(self):
        assert generate_combinations(["1", "3"], 0) == []

    def test_empty_catalog_is_empty(self):
        assert generate_combinations([], 3) == []

    def test_include_auto_appends(self):
        combos = generate_combinations(["1", "3"], 1, include_auto=True)

        assert combos == ["1", "3", AUTO]

    def test_deterministic(self):
        assert generate_combinations(DEFAULT_BANDS, 3) == generate_combinations(
            DEFAULT_BANDS, 3
        )


class TestPlan:
    """Tests for plan_combinations."""

    def test_full_plan_not_partial(self):
        plan = plan_combinations(["1", "3", "20"], 2)

        assert len(plan) == 6
        assert plan.total_generated == 6
        assert not plan.is_partial
        assert plan.universe == plan.combinations

    def test_include_filter(self):
        """Only combinations touching an included band are kept."""
        plan = plan_combinations(["1", "3", "20"], 2, include=["20"])

        assert plan.combinations == ["20", "1+20", "3+20"]
        assert plan.is_partial

    def test_exclude_filter(self):
        plan = plan_combinations(["1", "3", "20"], 2, exclude=["20"])

        assert plan.combinations == ["1", "3", "1+3"]
        assert plan.is_partial

    def test_limit_marks_partial(self):
        plan = plan_combinations(["1", "3", "20"], 2, limit=2)

        assert plan.combinations == ["1", "3"]
        assert plan.is_partial

    def test_limit_not_reached(self):
        """A limit at or above the count does not narrow the plan."""
        plan = plan_combinations(["1", "3"], 2, limit=10)

        assert len(plan) == 3
        assert not plan.is_partial

    def test_attempted_dropped_universe_kept(self):
        plan = plan_combinations(["1", "3", "20"], 2, attempted=["1", "1+3"])

        assert plan.combinations == ["3", "20", "1+20", "3+20"]
        assert len(plan.universe) == 6
        assert plan.already_attempted == 2

    def test_shuffle_seed_stable(self):
        """The same seed gives the same order; singletons still come first."""
        first = plan_combinations(DEFAULT_BANDS, 2, shuffle=True, seed=7)
        second = plan_combinations(DEFAULT_BANDS, 2, shuffle=True, seed=7)

        assert first.combinations == second.combinations
        sizes = [group_size(c) for c in first.combinations]
        assert sizes == sorted(sizes)

    def test_singletons_before_pairs(self):
        plan = plan_combinations(DEFAULT_BANDS, 3)
        sizes = [group_size(c) for c in plan.combinations]

        assert sizes == sorted(sizes)


class TestHelpers:
    """Tests for estimates and band list parsing."""

    def test_estimate_duration(self):
        assert estimate_duration(10, 120) == (0, 40)
        assert estimate_duration(30, 180) == (2, 30)
        assert estimate_duration(0, 120) == (0, 0)

    def test_parse_band_list(self):
        assert parse_band_list("1, 3,20,") == ["1", "3", "20"]
        assert parse_band_list(None) == []
        assert parse_band_list("") == []
