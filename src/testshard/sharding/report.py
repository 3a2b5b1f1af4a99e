"""Partition report: a serializable, read-only view of a PartitionResult."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from testshard.sharding.partitioner import PartitionResult


@dataclass(frozen=True)
class GroupSummary:
    """Summary of a single shard."""

    index: int
    tests: tuple[str, ...]
    total_ms: float

    @property
    def test_count(self) -> int:
        return len(self.tests)

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "total_ms": self.total_ms,
            "test_count": self.test_count,
            "tests": list(self.tests),
        }


@dataclass(frozen=True)
class PartitionSummary:
    """Per-group test lists plus balance statistics."""

    groups: tuple[GroupSummary, ...]
    """One entry per group, ordered by index."""

    total_ms: float
    """Sum of all group totals."""

    max_total_ms: float
    """Total of the slowest group."""

    min_total_ms: float
    """Total of the fastest group."""

    mean_total_ms: float
    """Average group total."""

    imbalance_ratio: float
    """Slowest total divided by fastest total (``inf`` if the fastest is empty)."""

    slowest_index: int | None
    """Index of the slowest group, ``None`` when there are no groups."""

    fastest_index: int | None
    """Index of the fastest group, ``None`` when there are no groups."""

    @property
    def group_count(self) -> int:
        return len(self.groups)

    @property
    def test_count(self) -> int:
        return sum(g.test_count for g in self.groups)

    def tests_for(self, index: int) -> tuple[str, ...]:
        """Return the tests assigned to group *index*.

        Raises:
            IndexError: If *index* is out of range.
        """
        if not 0 <= index < len(self.groups):
            msg = f"group index must be in [0, {len(self.groups)}), got {index}"
            raise IndexError(msg)
        return self.groups[index].tests

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dict (an infinite ratio becomes ``None``)."""
        return {
            "group_count": self.group_count,
            "test_count": self.test_count,
            "total_ms": self.total_ms,
            "max_total_ms": self.max_total_ms,
            "min_total_ms": self.min_total_ms,
            "mean_total_ms": self.mean_total_ms,
            "imbalance_ratio": (
                self.imbalance_ratio if math.isfinite(self.imbalance_ratio) else None
            ),
            "slowest_index": self.slowest_index,
            "fastest_index": self.fastest_index,
            "groups": [g.to_dict() for g in self.groups],
        }


def summarize(result: PartitionResult) -> PartitionSummary:
    """Build the report for *result*."""
    return PartitionSummary(
        groups=tuple(
            GroupSummary(index=g.index, tests=g.tests, total_ms=g.total_ms)
            for g in result.groups
        ),
        total_ms=result.total_ms,
        max_total_ms=result.max_total_ms,
        min_total_ms=result.min_total_ms,
        mean_total_ms=result.mean_total_ms,
        imbalance_ratio=result.imbalance_ratio,
        slowest_index=result.slowest.index if result.groups else None,
        fastest_index=result.fastest.index if result.groups else None,
    )
