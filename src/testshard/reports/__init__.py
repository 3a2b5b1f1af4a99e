"""Historical test report ingestion."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from testshard.reports.junit import read_junit_report
from testshard.utils.concurrency import DEFAULT_MAX_WORKERS, gather_bounded

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from testshard.sharding.durations import DurationSample

logger = logging.getLogger(__name__)


async def collect_samples(
    paths: Sequence[Path],
    *,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> list[DurationSample]:
    """Read JUnit reports concurrently and concatenate their samples.

    Raises:
        MalformedReportError: If any report is invalid.
    """
    per_report = await gather_bounded(read_junit_report, paths, max_workers=max_workers)
    samples = [sample for report in per_report for sample in report]
    logger.info("Read %d duration samples from %d JUnit reports", len(samples), len(paths))
    return samples


__all__ = ["collect_samples", "read_junit_report"]
