"""End-to-end split pipeline: discovery, history, partitioning, report."""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from testshard.discovery import DiscoveryResult, discover_test_classes, find_files
from testshard.errors import EmptyCatalogWarning
from testshard.reports import collect_samples
from testshard.sharding.catalog import TestCatalog, resolve_durations
from testshard.sharding.durations import (
    DEFAULT_ESTIMATE_MS,
    Aggregation,
    DurationModel,
    NewTestTime,
)
from testshard.sharding.partitioner import PartitionResult, partition, validate_group_count
from testshard.sharding.report import PartitionSummary, summarize
from testshard.utils.concurrency import DEFAULT_MAX_WORKERS

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class SplitOptions:
    """Inputs for one split run."""

    glob: str
    """Glob pattern matching test sources."""

    group_count: int
    """Number of shards."""

    exclude_glob: str | None = None
    """Glob pattern of test sources to leave out."""

    junit_glob: str | None = None
    """Glob pattern matching JUnit reports (``None`` = no history)."""

    new_test_time: NewTestTime = NewTestTime.MEDIAN
    """Estimate for tests without history."""

    aggregation: Aggregation = Aggregation.MAX
    """Reduction of repeated samples per test."""

    default_estimate_ms: float = DEFAULT_ESTIMATE_MS
    """Estimate for every test when no history exists at all."""

    max_workers: int = DEFAULT_MAX_WORKERS
    """Maximum files parsed concurrently."""


@dataclass
class SplitPlan:
    """Everything computed by one split run."""

    discovery: DiscoveryResult
    catalog: TestCatalog
    model: DurationModel
    resolved: dict[str, float]
    result: PartitionResult
    summary: PartitionSummary
    report_files: int = 0
    warnings: list[str] = field(default_factory=list)


async def plan_split(root: Path, options: SplitOptions) -> SplitPlan:
    """Discover tests under *root*, load their history and partition them.

    Raises:
        InvalidGroupCountError: Before any I/O if the group count is invalid.
        InvalidIdentifierError: If discovery produced an invalid identifier.
        MalformedReportError: If a JUnit report is invalid.
    """
    validate_group_count(options.group_count)

    test_paths = find_files(root, options.glob, options.exclude_glob)
    logger.info("Found %d test files matching %s", len(test_paths), options.glob)
    discovery = await discover_test_classes(test_paths, max_workers=options.max_workers)
    catalog = TestCatalog.build(discovery.identifiers)
    if catalog:
        logger.info("Found %d test classes", len(catalog))

    report_paths: list[Path] = []
    if options.junit_glob:
        report_paths = find_files(root, options.junit_glob)
        logger.info("Found %d JUnit report files", len(report_paths))
    samples = await collect_samples(report_paths, max_workers=options.max_workers)
    model = DurationModel.build(
        samples,
        aggregation=options.aggregation,
        new_test_time=options.new_test_time,
        default_estimate_ms=options.default_estimate_ms,
    )

    resolved = resolve_durations(catalog, model)
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", EmptyCatalogWarning)
        result = partition(resolved, options.group_count)
    messages = [str(w.message) for w in caught if issubclass(w.category, EmptyCatalogWarning)]
    for message in messages:
        logger.warning("%s", message)

    return SplitPlan(
        discovery=discovery,
        catalog=catalog,
        model=model,
        resolved=resolved,
        result=result,
        summary=summarize(result),
        report_files=len(report_paths),
        warnings=messages,
    )
