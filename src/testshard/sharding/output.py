"""Serialization of partition reports for downstream test runners."""

from __future__ import annotations

import json
import logging
import math
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from testshard.sharding.report import PartitionSummary

logger = logging.getLogger(__name__)

_SECONDS_PER_MINUTE = 60
_MS_PER_SECOND = 1000.0


class FormatOption(str, Enum):
    """Rendering of test names for the downstream runner."""

    LIST = "list"
    GRADLE = "gradle"


def format_tests(tests: Iterable[str], fmt: FormatOption = FormatOption.LIST) -> list[str]:
    """Render test identifiers in the given output format."""
    if FormatOption(fmt) is FormatOption.GRADLE:
        return [f"--tests {test}" for test in tests]
    return list(tests)


def format_duration(duration_ms: float) -> str:
    """Format milliseconds as ``MMmSSs`` (minutes may exceed two digits)."""
    if not math.isfinite(duration_ms):
        return "--m--s"
    seconds = duration_ms / _MS_PER_SECOND
    minutes = math.floor(seconds / _SECONDS_PER_MINUTE)
    remainder = round(seconds - minutes * _SECONDS_PER_MINUTE)
    if remainder == _SECONDS_PER_MINUTE:
        minutes += 1
        remainder = 0
    return f"{minutes:02d}m{remainder:02d}s"


def format_index(index: int) -> str:
    """Format a group index with two digits."""
    return f"{index:02d}"


def write_partition_json(summary: PartitionSummary, output_path: Path) -> None:
    """Serialize and write the full partition report to a JSON file."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(summary.to_dict(), indent=2), encoding="utf-8")
    logger.info("Partition report written to %s", output_path)


def write_shard_files(
    summary: PartitionSummary,
    directory: Path,
    fmt: FormatOption = FormatOption.LIST,
) -> list[Path]:
    """Write one ``shard-NN.txt`` file per group, one test per line.

    Returns:
        Paths of the written files, ordered by group index.
    """
    directory.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    for group in summary.groups:
        path = directory / f"shard-{format_index(group.index)}.txt"
        lines = format_tests(group.tests, fmt)
        path.write_text("".join(f"{line}\n" for line in lines), encoding="utf-8")
        written.append(path)
    logger.info("Wrote %d shard files to %s", len(written), directory)
    return written
