"""Duration model: historical samples merged into one estimate per test.

Samples are grouped by identifier and reduced with an aggregation policy
(maximum by default, so shards are balanced against the worst observed run).
Tests without history receive a fallback estimate derived from the tests that
do have one.
"""

from __future__ import annotations

import logging
import math
import statistics
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING

from testshard.errors import MalformedReportError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

logger = logging.getLogger(__name__)

# ── Constants ─────────────────────────────────────────────────────

DEFAULT_ESTIMATE_MS = 1.0
"""Estimate used for every test when no test in the run has any history."""


# ── Policies ──────────────────────────────────────────────────────


class Aggregation(str, Enum):
    """How several samples for the same test are reduced to one estimate."""

    MAX = "max"
    MEAN = "mean"
    MEDIAN = "median"


class NewTestTime(str, Enum):
    """How the estimate for a test without history is derived."""

    MEDIAN = "median"
    AVERAGE = "average"
    MIN = "min"
    MAX = "max"
    ZERO = "zero"


# ── Data models ───────────────────────────────────────────────────


@dataclass(frozen=True)
class DurationSample:
    """One observed execution time for a test."""

    identifier: str
    """Test identifier the sample belongs to."""

    duration_ms: float
    """Observed duration in milliseconds."""

    source: str = ""
    """Report the sample was read from."""


@dataclass(frozen=True)
class DurationModel:
    """Read-only mapping from test identifier to estimated duration."""

    estimates: Mapping[str, float] = field(default_factory=lambda: MappingProxyType({}))
    """Per-identifier estimates for tests with history."""

    fallback: float = DEFAULT_ESTIMATE_MS
    """Estimate for tests without history."""

    @classmethod
    def build(
        cls,
        samples: Iterable[DurationSample],
        *,
        aggregation: Aggregation = Aggregation.MAX,
        new_test_time: NewTestTime = NewTestTime.MEDIAN,
        default_estimate_ms: float = DEFAULT_ESTIMATE_MS,
    ) -> DurationModel:
        """Build a model from raw samples.

        Args:
            samples: Samples in any order; repeated identifiers are merged.
            aggregation: Reduction applied to the samples of one identifier.
            new_test_time: Derivation of the fallback estimate.
            default_estimate_ms: Fallback when no identifier has samples.

        Returns:
            A new, read-only DurationModel.

        Raises:
            MalformedReportError: If a sample has an empty identifier or a
                negative, non-finite or non-numeric duration.
        """
        grouped: dict[str, list[float]] = defaultdict(list)
        for sample in samples:
            grouped[sample.identifier].append(_validate_sample(sample))

        reduce = _AGGREGATORS[Aggregation(aggregation)]
        estimates = {identifier: reduce(values) for identifier, values in grouped.items()}
        fallback = _fallback_estimate(
            list(estimates.values()), NewTestTime(new_test_time), default_estimate_ms
        )
        logger.debug(
            "Duration model: %d tests with history, fallback %.1f ms",
            len(estimates),
            fallback,
        )
        return cls(estimates=MappingProxyType(estimates), fallback=fallback)

    def has_history(self, identifier: str) -> bool:
        """Return True when at least one sample exists for *identifier*."""
        return identifier in self.estimates

    def estimate_for(self, identifier: str) -> float:
        """Return the estimate for *identifier*, or the fallback."""
        return self.estimates.get(identifier, self.fallback)

    def __len__(self) -> int:
        return len(self.estimates)


# ── Helpers ───────────────────────────────────────────────────────


def _validate_sample(sample: DurationSample) -> float:
    if not isinstance(sample.identifier, str) or not sample.identifier.strip():
        msg = f"Duration sample from {sample.source or 'unknown source'} has no test name"
        raise MalformedReportError(msg)
    value = sample.duration_ms
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        msg = f"Duration for {sample.identifier!r} is not numeric: {value!r}"
        raise MalformedReportError(msg)
    if not math.isfinite(value) or value < 0:
        msg = f"Duration for {sample.identifier!r} must be finite and >= 0, got {value!r}"
        raise MalformedReportError(msg)
    return float(value)


def _mean(values: list[float]) -> float:
    # fsum is correctly rounded, so the result does not depend on sample order
    return math.fsum(values) / len(values)


_AGGREGATORS = {
    Aggregation.MAX: max,
    Aggregation.MEAN: _mean,
    Aggregation.MEDIAN: statistics.median,
}


def _fallback_estimate(
    estimates: list[float],
    policy: NewTestTime,
    default_estimate_ms: float,
) -> float:
    if not estimates:
        return default_estimate_ms
    if policy is NewTestTime.ZERO:
        return 0.0
    if policy is NewTestTime.AVERAGE:
        return _mean(estimates)
    if policy is NewTestTime.MIN:
        return min(estimates)
    if policy is NewTestTime.MAX:
        return max(estimates)
    return float(statistics.median(estimates))
