"""Tests for the LPT partitioner."""

from __future__ import annotations

import itertools
import math
import random

import pytest

from testshard.errors import EmptyCatalogWarning, InvalidGroupCountError, MalformedReportError
from testshard.sharding.partitioner import Group, PartitionResult, partition, validate_group_count


def _lpt_bound(group_count: int) -> float:
    return 4 / 3 - 1 / (3 * group_count)


def _optimal_makespan(costs: list[float], group_count: int) -> float:
    """Brute-force the smallest possible slowest-group total."""
    best = math.inf
    for assignment in itertools.product(range(group_count), repeat=len(costs)):
        totals = [0.0] * group_count
        for cost, index in zip(costs, assignment, strict=True):
            totals[index] += cost
        best = min(best, max(totals))
    return best


def _random_suite(rng: random.Random, size: int) -> dict[str, float]:
    return {f"com.example.Test{i:03d}": float(rng.randint(0, 5000)) for i in range(size)}


# ── Scenarios ─────────────────────────────────────────────────────────


class TestScenarios:
    def test_four_tests_into_two_groups(self) -> None:
        resolved = {"A": 500.0, "B": 500.0, "C": 300.0, "D": 200.0}
        result = partition(resolved, 2)

        assert result.groups[0].tests == ("A", "C")
        assert result.groups[1].tests == ("B", "D")
        assert result.groups[0].total_ms == 800.0
        assert result.groups[1].total_ms == 700.0
        assert result.imbalance_ratio == pytest.approx(800 / 700)

    def test_equal_estimates_are_round_robin(self) -> None:
        resolved = dict.fromkeys(["f", "e", "d", "c", "b", "a"], 10.0)
        result = partition(resolved, 3)

        assert [g.tests for g in result.groups] == [("a", "d"), ("b", "e"), ("c", "f")]
        assert result.imbalance_ratio == 1.0

    def test_one_dominant_test(self) -> None:
        resolved = {"big": 1000.0, "s1": 10.0, "s2": 10.0, "s3": 10.0}
        result = partition(resolved, 2)

        assert result.groups[0].tests == ("big",)
        assert result.groups[1].tests == ("s1", "s2", "s3")
        assert result.slowest.index == 0

    def test_single_group_holds_everything(self) -> None:
        resolved = {"b": 1.0, "a": 3.0, "c": 2.0}
        result = partition(resolved, 1)

        assert result.group_count == 1
        assert result.groups[0].tests == ("a", "c", "b")
        assert result.groups[0].total_ms == 6.0
        assert result.imbalance_ratio == 1.0

    def test_more_groups_than_tests(self) -> None:
        resolved = {"a": 30.0, "b": 20.0, "c": 10.0}
        result = partition(resolved, 5)

        assert result.group_count == 5
        assert [len(g) for g in result.groups] == [1, 1, 1, 0, 0]
        assert result.imbalance_ratio == math.inf

    def test_single_test_single_group(self) -> None:
        result = partition({"only": 42.0}, 1)
        assert result.groups == (Group(index=0, tests=("only",), total_ms=42.0),)

    def test_zero_cost_tests_spread_over_groups(self) -> None:
        result = partition({"a": 0.0, "b": 0.0, "c": 0.0}, 3)
        assert [g.tests for g in result.groups] == [("a",), ("b",), ("c",)]
        assert result.imbalance_ratio == 1.0

    def test_zero_cost_tests_are_round_robin(self) -> None:
        result = partition(dict.fromkeys(["a", "b", "c", "d", "e"], 0.0), 2)
        assert [g.tests for g in result.groups] == [("a", "c", "e"), ("b", "d")]

    def test_zero_cost_tests_fill_empty_groups_first(self) -> None:
        result = partition({"big": 100.0, "z1": 0.0, "z2": 0.0}, 3)
        assert [g.tests for g in result.groups] == [("big",), ("z1",), ("z2",)]

    def test_tie_on_estimate_sorts_by_name(self) -> None:
        result = partition({"zeta": 5.0, "alpha": 5.0, "mid": 5.0}, 1)
        assert result.groups[0].tests == ("alpha", "mid", "zeta")


# ── Properties ────────────────────────────────────────────────────────


class TestProperties:
    @pytest.mark.parametrize("seed", range(10))
    def test_every_test_assigned_exactly_once(self, seed: int) -> None:
        rng = random.Random(seed)
        resolved = _random_suite(rng, rng.randint(1, 60))
        group_count = rng.randint(1, 12)

        result = partition(resolved, group_count)
        assigned = [t for g in result.groups for t in g.tests]

        assert len(result.groups) == group_count
        assert sorted(assigned) == sorted(resolved)

    @pytest.mark.parametrize("seed", range(10))
    def test_totals_are_conserved(self, seed: int) -> None:
        rng = random.Random(seed)
        resolved = {f"t{i}": rng.uniform(0, 1000) for i in range(rng.randint(1, 80))}

        result = partition(resolved, rng.randint(1, 9))

        for group in result.groups:
            assert group.total_ms == pytest.approx(math.fsum(resolved[t] for t in group.tests))
        assert result.total_ms == pytest.approx(math.fsum(resolved.values()))

    @pytest.mark.parametrize("seed", range(5))
    def test_input_order_does_not_matter(self, seed: int) -> None:
        rng = random.Random(seed)
        resolved = _random_suite(rng, 40)
        items = list(resolved.items())
        rng.shuffle(items)

        assert partition(resolved, 4) == partition(dict(items), 4)

    def test_repeated_runs_are_identical(self) -> None:
        resolved = _random_suite(random.Random(99), 30)
        assert partition(resolved, 3) == partition(resolved, 3)

    def test_groups_keep_assignment_order(self) -> None:
        resolved = _random_suite(random.Random(3), 25)
        for group in partition(resolved, 4).groups:
            estimates = [resolved[t] for t in group.tests]
            assert estimates == sorted(estimates, reverse=True)

    def test_indices_are_contiguous(self) -> None:
        result = partition({"a": 1.0}, 6)
        assert [g.index for g in result.groups] == list(range(6))

    def test_each_test_gets_own_group_when_groups_suffice(self) -> None:
        resolved = {f"t{i}": float(i + 1) for i in range(4)}
        result = partition(resolved, 4)
        assert all(len(g) == 1 for g in result.groups)

    @pytest.mark.parametrize("seed", range(5))
    def test_zero_cost_tests_get_own_group_when_groups_suffice(self, seed: int) -> None:
        rng = random.Random(seed)
        resolved = {f"t{i}": float(rng.choice([0, 0, 10, 25])) for i in range(6)}
        result = partition(resolved, rng.randint(6, 9))
        assert all(len(g) <= 1 for g in result.groups)
        assert sum(len(g) for g in result.groups) == 6

    @pytest.mark.parametrize("seed", range(12))
    def test_within_lpt_bound_of_optimal(self, seed: int) -> None:
        rng = random.Random(seed)
        costs = [float(rng.randint(1, 50)) for _ in range(rng.randint(1, 8))]
        group_count = rng.randint(1, 3)
        resolved = {f"t{i}": cost for i, cost in enumerate(costs)}

        lpt = partition(resolved, group_count).max_total_ms
        optimal = _optimal_makespan(costs, group_count)

        assert lpt <= _lpt_bound(group_count) * optimal + 1e-9


# ── Empty input ───────────────────────────────────────────────────────


class TestEmptyInput:
    def test_warns_and_returns_empty_groups(self) -> None:
        with pytest.warns(EmptyCatalogWarning):
            result = partition({}, 3)

        assert result.group_count == 3
        assert all(len(g) == 0 and g.total_ms == 0.0 for g in result.groups)
        assert result.imbalance_ratio == 1.0

    def test_invalid_group_count_checked_before_empty_warning(self) -> None:
        with pytest.raises(InvalidGroupCountError):
            partition({}, 0)


# ── Validation ────────────────────────────────────────────────────────


class TestValidation:
    @pytest.mark.parametrize("value", [0, -1, -100])
    def test_rejects_non_positive_group_count(self, value: int) -> None:
        with pytest.raises(InvalidGroupCountError, match=">= 1"):
            partition({"a": 1.0}, value)

    @pytest.mark.parametrize("value", [True, 2.0, "2", None])
    def test_rejects_non_integer_group_count(self, value: object) -> None:
        with pytest.raises(InvalidGroupCountError, match="integer"):
            partition({"a": 1.0}, value)  # type: ignore[arg-type]

    def test_validate_group_count_returns_value(self) -> None:
        assert validate_group_count(7) == 7

    @pytest.mark.parametrize("value", [-1.0, math.nan, math.inf, "3"])
    def test_rejects_invalid_estimates(self, value: object) -> None:
        with pytest.raises(MalformedReportError, match="bad"):
            partition({"ok": 1.0, "bad": value}, 2)  # type: ignore[dict-item]


# ── PartitionResult ───────────────────────────────────────────────────


class TestPartitionResult:
    def test_statistics(self) -> None:
        result = PartitionResult(
            groups=(
                Group(index=0, tests=("a",), total_ms=300.0),
                Group(index=1, tests=("b", "c"), total_ms=100.0),
                Group(index=2, tests=("d",), total_ms=200.0),
            )
        )
        assert result.max_total_ms == 300.0
        assert result.min_total_ms == 100.0
        assert result.total_ms == 600.0
        assert result.mean_total_ms == 200.0
        assert result.imbalance_ratio == 3.0
        assert result.slowest.index == 0
        assert result.fastest.index == 1

    def test_ties_resolve_to_lowest_index(self) -> None:
        result = PartitionResult(
            groups=(
                Group(index=0, tests=("a",), total_ms=5.0),
                Group(index=1, tests=("b",), total_ms=5.0),
            )
        )
        assert result.slowest.index == 0
        assert result.fastest.index == 0

    def test_result_is_immutable(self) -> None:
        result = partition({"a": 1.0}, 1)
        with pytest.raises(AttributeError):
            result.groups = ()  # type: ignore[misc]
