"""Duration modelling and balanced partitioning of tests into shards."""

from testshard.sharding.catalog import TestCatalog, resolve_durations
from testshard.sharding.durations import (
    DEFAULT_ESTIMATE_MS,
    Aggregation,
    DurationModel,
    DurationSample,
    NewTestTime,
)
from testshard.sharding.optimal import calculate_optimal_group_count
from testshard.sharding.output import (
    FormatOption,
    format_duration,
    format_tests,
    write_partition_json,
    write_shard_files,
)
from testshard.sharding.partitioner import (
    Group,
    PartitionResult,
    partition,
    validate_group_count,
)
from testshard.sharding.report import GroupSummary, PartitionSummary, summarize

__all__ = [
    "DEFAULT_ESTIMATE_MS",
    "Aggregation",
    "DurationModel",
    "DurationSample",
    "FormatOption",
    "Group",
    "GroupSummary",
    "NewTestTime",
    "PartitionResult",
    "PartitionSummary",
    "TestCatalog",
    "calculate_optimal_group_count",
    "format_duration",
    "format_tests",
    "partition",
    "resolve_durations",
    "summarize",
    "validate_group_count",
    "write_partition_json",
    "write_shard_files",
]
