"""Longest-processing-time-first partitioning of tests into groups.

Tests are sorted by estimated duration (longest first, ties broken by name)
and each one is assigned to the group with the smallest running total (ties
broken by lowest group index; groups whose total is still zero prefer the
one holding fewer tests).  The result is within
``4/3 - 1/(3 * group_count)`` of the optimal makespan and is fully
deterministic for a given input, regardless of input ordering.
"""

from __future__ import annotations

import heapq
import logging
import math
import warnings
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from testshard.errors import EmptyCatalogWarning, InvalidGroupCountError, MalformedReportError

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Group:
    """One output shard."""

    index: int
    """Zero-based group index."""

    tests: tuple[str, ...] = ()
    """Assigned identifiers in assignment order (longest first)."""

    total_ms: float = 0.0
    """Sum of the estimates of the assigned tests."""

    def __len__(self) -> int:
        return len(self.tests)


@dataclass(frozen=True)
class PartitionResult:
    """All groups of one partitioning run plus derived statistics."""

    groups: tuple[Group, ...] = field(default_factory=tuple)

    @property
    def group_count(self) -> int:
        return len(self.groups)

    @property
    def max_total_ms(self) -> float:
        return max((g.total_ms for g in self.groups), default=0.0)

    @property
    def min_total_ms(self) -> float:
        return min((g.total_ms for g in self.groups), default=0.0)

    @property
    def total_ms(self) -> float:
        return math.fsum(g.total_ms for g in self.groups)

    @property
    def mean_total_ms(self) -> float:
        if not self.groups:
            return 0.0
        return self.total_ms / len(self.groups)

    @property
    def imbalance_ratio(self) -> float:
        """Slowest group total divided by fastest group total.

        ``1.0`` when every group is empty or zero-cost; ``inf`` when some
        group has no cost while another has.
        """
        slowest = self.max_total_ms
        fastest = self.min_total_ms
        if slowest == 0:
            return 1.0
        if fastest == 0:
            return math.inf
        return slowest / fastest

    @property
    def slowest(self) -> Group:
        """Group with the largest total (lowest index on ties)."""
        return max(self.groups, key=lambda g: (g.total_ms, -g.index))

    @property
    def fastest(self) -> Group:
        """Group with the smallest total (lowest index on ties)."""
        return min(self.groups, key=lambda g: (g.total_ms, g.index))


def _is_valid_cost(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value >= 0


def validate_group_count(group_count: object) -> int:
    """Return *group_count* if it is a positive integer.

    Raises:
        InvalidGroupCountError: Otherwise; the value is never clamped.
    """
    if isinstance(group_count, bool) or not isinstance(group_count, int):
        msg = f"group count must be an integer, got {group_count!r}"
        raise InvalidGroupCountError(msg)
    if group_count < 1:
        msg = f"group count must be >= 1, got {group_count}"
        raise InvalidGroupCountError(msg)
    return group_count


def partition(resolved: Mapping[str, float], group_count: int) -> PartitionResult:
    """Assign every test in *resolved* to one of *group_count* groups.

    Args:
        resolved: Estimated duration per test identifier.
        group_count: Number of groups to balance across.

    Returns:
        PartitionResult with exactly *group_count* groups.

    Raises:
        InvalidGroupCountError: If *group_count* is not a positive integer.
        MalformedReportError: If an estimate is negative or not finite.
    """
    group_count = validate_group_count(group_count)

    for identifier, estimate in resolved.items():
        if not _is_valid_cost(estimate):
            msg = f"Estimate for {identifier!r} must be finite and >= 0, got {estimate!r}"
            raise MalformedReportError(msg)

    if not resolved:
        warnings.warn(
            f"No tests to partition; returning {group_count} empty groups",
            EmptyCatalogWarning,
            stacklevel=2,
        )

    ordered = sorted(resolved.items(), key=lambda item: (-item[1], item[0]))

    members: list[list[str]] = [[] for _ in range(group_count)]
    costs: list[list[float]] = [[] for _ in range(group_count)]
    # (running total, test count while the total is zero, index): least loaded
    # first, zero-cost tests spread over groups with no cost yet, then lowest index
    loads = [(0.0, 0, index) for index in range(group_count)]
    for identifier, estimate in ordered:
        total, _, index = heapq.heappop(loads)
        members[index].append(identifier)
        costs[index].append(estimate)
        logger.debug("Adding test %s to group #%02d", identifier, index)
        new_total = total + estimate
        tiebreak = len(members[index]) if new_total == 0 else 0
        heapq.heappush(loads, (new_total, tiebreak, index))

    groups = tuple(
        Group(index=index, tests=tuple(members[index]), total_ms=math.fsum(costs[index]))
        for index in range(group_count)
    )
    result = PartitionResult(groups=groups)
    logger.debug(
        "Partitioned %d tests into %d groups (slowest %.1f ms, fastest %.1f ms)",
        len(ordered),
        group_count,
        result.max_total_ms,
        result.min_total_ms,
    )
    return result
