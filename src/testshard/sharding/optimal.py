"""Search for the group count after which more shards stop helping."""

from __future__ import annotations

import logging
import warnings
from typing import TYPE_CHECKING

from testshard.errors import EmptyCatalogWarning
from testshard.sharding.partitioner import partition

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

DEFAULT_MAX_CALCULATIONS = 50


def calculate_optimal_group_count(
    resolved: Mapping[str, float],
    max_calculations: int = DEFAULT_MAX_CALCULATIONS,
) -> int | None:
    """Find the smallest group count whose slowest group cannot be improved.

    Partitions with 1, 2, 3, ... groups until adding a group no longer
    reduces the slowest group's total (with LPT that happens once the
    longest single test dominates a group).

    Args:
        resolved: Estimated duration per test identifier.
        max_calculations: Upper bound on the number of group counts tried.

    Returns:
        The optimal group count, or ``None`` if it was not found within
        *max_calculations* attempts.

    Raises:
        ValueError: If *max_calculations* is less than 1.
    """
    if max_calculations < 1:
        msg = f"max_calculations must be >= 1, got {max_calculations}"
        raise ValueError(msg)

    previous_slowest: float | None = None
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", EmptyCatalogWarning)
        for group_count in range(1, max_calculations + 1):
            slowest = partition(resolved, group_count).max_total_ms
            if previous_slowest is not None and slowest >= previous_slowest:
                optimal = group_count - 1
                logger.info("The optimal group count for this test suite is %d", optimal)
                return optimal
            logger.debug("Slowest group with %d groups takes %.1f ms", group_count, slowest)
            previous_slowest = slowest

    logger.warning(
        "A maximum of %d calculations is too low to find the optimal group count",
        max_calculations,
    )
    return None
